"""API routes package.

Routers by domain:

- health: Health check endpoints
- pages: Server-rendered pages behind the route authorization middleware
- auth: Sign-up, sign-in, sign-out and session lookup
- balance: Wallet balance and eBills float funding
- webhooks: Signed provider callbacks

API routers are registered in main.py with the /api prefix; pages are not.
"""

from topup_api.routes.auth import router as auth_router
from topup_api.routes.balance import router as balance_router
from topup_api.routes.health import router as health_router
from topup_api.routes.pages import router as pages_router
from topup_api.routes.webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "balance_router",
    "health_router",
    "pages_router",
    "webhooks_router",
]
