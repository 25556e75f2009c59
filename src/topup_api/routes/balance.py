"""Wallet balance endpoints.

Provides REST endpoints for:
- Funding the eBills float from Flutterwave (admin key required)
- Reading a user's wallet balance together with the eBills float
"""

import hmac
from decimal import Decimal

from botocore.exceptions import ClientError
from fastapi import APIRouter, BackgroundTasks, Depends, Query

from topup_shared.config import AppConfig
from topup_shared.models.errors import ErrorCode, TopupError
from topup_shared.services.background import recheck_ebills_balance
from topup_shared.services.dynamodb import DynamoDBService
from topup_shared.services.ebills_service import EbillsService
from topup_shared.services.flutterwave_service import FlutterwaveService
from topup_shared.services.provider_client import ProviderError
from topup_shared.utils.logging import get_logger

from topup_api.dependencies import (
    get_config,
    get_dynamodb,
    get_ebills_service,
    get_flutterwave_service,
)
from topup_api.models.balance import BalanceCheckResponse, FundWalletRequest, FundWalletResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/balance", tags=["balance"])


def _admin_key_matches(supplied: str, config: AppConfig) -> bool:
    expected = config.secret("admin_secret_key")
    if not expected:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


@router.post(
    "/fund",
    summary="Fund the eBills wallet",
    description="""
Transfer NGN from Flutterwave to the eBills wallet account.

**Requires the admin key.**

A balance re-check runs in the background a few seconds after the response;
its result is only logged.
""",
    response_model=FundWalletResponse,
    responses={
        400: {"description": "Invalid amount"},
        403: {"description": "Wrong admin key"},
        502: {"description": "Flutterwave rejected the transfer"},
    },
)
async def fund_wallet(
    body: FundWalletRequest,
    background_tasks: BackgroundTasks,
    config: AppConfig = Depends(get_config),
    flutterwave: FlutterwaveService = Depends(get_flutterwave_service),
    ebills: EbillsService = Depends(get_ebills_service),
) -> FundWalletResponse:
    if not _admin_key_matches(body.admin_key, config):
        logger.warning("Wallet funding attempted with an invalid admin key")
        raise TopupError(ErrorCode.FORBIDDEN)

    if not body.amount.is_finite() or body.amount <= 0:
        raise TopupError(ErrorCode.VALIDATION_FAILED, details={"amount": "Invalid amount"})

    try:
        result = await flutterwave.fund_ebills_wallet(
            body.amount, "Manual eBills wallet funding - Admin initiated"
        )
    except ProviderError as e:
        raise TopupError(ErrorCode.UPSTREAM_FAILURE, details={"message": str(e)}) from e

    background_tasks.add_task(
        recheck_ebills_balance, ebills, config.balance_recheck_delay_seconds
    )

    return FundWalletResponse(
        transfer_id=FlutterwaveService.transfer_id(result),
        amount=float(body.amount),
    )


@router.get(
    "/check",
    summary="Check balances",
    response_model=BalanceCheckResponse,
    responses={400: {"description": "userId missing"}},
)
async def check_balance(
    user_id: str | None = Query(default=None, alias="userId"),
    db: DynamoDBService = Depends(get_dynamodb),
    ebills: EbillsService = Depends(get_ebills_service),
) -> BalanceCheckResponse:
    """Return the user's wallet balance; the eBills float is best-effort."""
    if not user_id:
        raise TopupError(ErrorCode.VALIDATION_FAILED, details={"userId": "User ID required"})

    try:
        user = db.get_user(user_id)
    except ClientError as e:
        logger.error("Failed to read wallet for %s: %s", user_id, e)
        raise

    user_balance = Decimal(str((user or {}).get("wallet_balance", 0)))

    ebills_balance: Decimal | None = None
    try:
        ebills_balance = await ebills.get_balance()
    except ProviderError as e:
        logger.warning("Could not fetch eBills balance: %s", e)

    return BalanceCheckResponse(
        user_balance=float(user_balance),
        ebills_balance=float(ebills_balance) if ebills_balance is not None else None,
    )
