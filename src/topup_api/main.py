"""FastAPI application for the top-up backend.

This package serves:
- Placeholder pages guarded by the route authorization middleware
- Auth endpoints that issue the session cookie
- Wallet balance endpoints
- Signed webhook endpoints for Korapay, Paystack, Flutterwave and eBills
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from topup_shared import __version__
from topup_shared.utils.logging import configure_logging, get_logger

from topup_api.exceptions import register_exception_handlers
from topup_api.middleware import CorrelationIdMiddleware, RouteAuthorizationMiddleware
from topup_api.routes import (
    auth_router,
    balance_router,
    health_router,
    pages_router,
    webhooks_router,
)

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Top-up API",
    description="Sessions, wallet balance and provider webhooks for the top-up app",
    version=__version__,
)

# Starlette runs the last-added middleware first: correlation ID wraps route auth
app.add_middleware(RouteAuthorizationMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# API routers live under /api, which the route authorization middleware skips
app.include_router(health_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(balance_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(pages_router)


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Liveness probe at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "topup-api",
    }


# API Gateway entry point
handler = Mangum(app, lifespan="off")


def run_server(host: str = "127.0.0.1", port: int = 8080, reload: bool = False) -> None:
    """Serve the app locally with uvicorn; reload watches src/."""
    import uvicorn

    target: Any = "topup_api.main:app" if reload else app
    uvicorn.run(target, host=host, port=port, reload=reload, reload_dirs=["src"] if reload else None)


if __name__ == "__main__":
    run_server(reload=True)
