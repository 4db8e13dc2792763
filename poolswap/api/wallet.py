from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.session import SwapSession, get_swap_session


router = APIRouter(prefix="/wallet")


@router.post("/connect")
async def connect_wallet(session: SwapSession = Depends(get_swap_session)) -> Dict[str, Any]:
    """Resolve the wallet account and load the initial pool view.

    Calling again re-resolves, so an account switch is picked up.
    """
    identity = await session.connect()
    return {
        "address": identity.address,
        "snapshot": session.snapshot.to_dict(),
    }


@router.post("/disconnect")
async def disconnect_wallet(session: SwapSession = Depends(get_swap_session)) -> Dict[str, Any]:
    session.disconnect()
    return {"connected": False}
