"""Background jobs scheduled after a response has been sent."""

import asyncio
from decimal import Decimal

from topup_shared.utils.logging import get_logger

from .ebills_service import EbillsService
from .provider_client import ProviderError

logger = get_logger(__name__)


async def recheck_ebills_balance(ebills: EbillsService, delay_seconds: float) -> Decimal | None:
    """Wait, then read the eBills wallet balance and log it.

    Runs as a FastAPI background task after a wallet funding request. The
    client already has its response, so failures are logged and swallowed.

    Args:
        ebills: eBills client
        delay_seconds: Seconds to wait before checking

    Returns:
        The balance, or None if it could not be read.
    """
    if delay_seconds > 0:
        await asyncio.sleep(delay_seconds)

    try:
        await ebills.get_access_token()
        balance = await ebills.get_balance()
    except ProviderError as e:
        logger.warning("Could not check updated eBills balance: %s", e)
        return None

    logger.info("Updated eBills balance: %s", balance)
    return balance
