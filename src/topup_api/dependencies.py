"""FastAPI dependency injection providers for shared services.

Services are created lazily and cached with @lru_cache, so each process
builds one AppConfig and one instance of each service.

Usage in routes:
    from topup_api.dependencies import get_dispatcher

    @router.post("/kora/webhook")
    async def kora_webhook(
        dispatcher: WebhookDispatcher = Depends(get_dispatcher),
    ):
        ...

Service Dependency Graph:
    AppConfig (load_config)
        ├── SessionCodec
        ├── ProviderVerifier (one per provider)
        ├── IdentityClient / EbillsService / FlutterwaveService
        └── DynamoDBService (singleton via get_dynamodb_service)
                └── WebhookDispatcher

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from fastapi import Depends, Request

from topup_shared.config import AppConfig, load_config
from topup_shared.models.enums import Provider
from topup_shared.models.session import SessionPayload
from topup_shared.services.dynamodb import DynamoDBService, get_dynamodb_service
from topup_shared.services.ebills_service import EbillsService
from topup_shared.services.flutterwave_service import FlutterwaveService
from topup_shared.services.identity_client import IdentityClient
from topup_shared.services.session_codec import SessionCodec
from topup_shared.services.webhook_dispatcher import WebhookDispatcher
from topup_shared.services.webhook_verifier import ProviderVerifier

from topup_api.session import get_session


@lru_cache
def get_config() -> AppConfig:
    """Get the process-wide AppConfig (read once from the environment)."""
    return load_config()


@lru_cache
def get_session_codec() -> SessionCodec:
    """Get cached SessionCodec keyed with SESSION_SECRET."""
    return SessionCodec(get_config())


def get_dynamodb() -> DynamoDBService:
    """Get the DynamoDB singleton for the configured environment."""
    return get_dynamodb_service(get_config().environment)


@lru_cache
def get_dispatcher() -> WebhookDispatcher:
    """Get cached WebhookDispatcher configured with DynamoDB singleton."""
    return WebhookDispatcher(db=get_dynamodb())


@lru_cache
def get_verifier(provider: Provider) -> ProviderVerifier:
    """Get the signature verifier for one provider."""
    return ProviderVerifier.for_provider(provider, get_config())


@lru_cache
def get_identity_client() -> IdentityClient:
    return IdentityClient(get_config())


@lru_cache
def get_ebills_service() -> EbillsService:
    return EbillsService(get_config())


@lru_cache
def get_flutterwave_service() -> FlutterwaveService:
    return FlutterwaveService(get_config())


def get_current_session(
    request: Request,
    codec: SessionCodec = Depends(get_session_codec),
) -> SessionPayload | None:
    """Decode the session cookie of the current request (None if absent)."""
    return get_session(request, codec)


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from topup_shared.services.dynamodb import reset_dynamodb_service

    get_config.cache_clear()
    get_session_codec.cache_clear()
    get_dispatcher.cache_clear()
    get_verifier.cache_clear()
    get_identity_client.cache_clear()
    get_ebills_service.cache_clear()
    get_flutterwave_service.cache_clear()

    reset_dynamodb_service()
