from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.session import SwapSession, get_swap_session

router = APIRouter()


@router.get("/healthz")
async def health_check(session: SwapSession = Depends(get_swap_session)) -> Dict[str, Any]:
    """Health check that verifies the wallet endpoint and configuration"""

    if session.provider is None:
        wallet_status: Dict[str, Any] = {
            "status": "unavailable",
            "reason": "Wallet RPC not configured",
        }
    elif hasattr(session.provider, "health_check"):
        wallet_status = await session.provider.health_check()
    else:
        wallet_status = {"status": "healthy"}

    configured = session.binder.pool_configured and session.binder.token_configured

    return {
        "status": "healthy" if wallet_status["status"] == "healthy" and configured else "degraded",
        "wallet": wallet_status,
        "pool_configured": session.binder.pool_configured,
        "token_configured": session.binder.token_configured,
        "connected": session.identity is not None,
    }
