from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..core.session import SwapSession, get_swap_session


router = APIRouter(prefix="/pool")


class AddLiquidityRequest(BaseModel):
    amount_a: int = Field(gt=0, description="Token A amount in minor units")
    amount_b: int = Field(gt=0, description="Token B amount in minor units")


@router.get("/reserves")
async def get_reserves(session: SwapSession = Depends(get_swap_session)) -> Dict[str, Any]:
    """Fresh reserves read; never served from a cache"""
    reserves = await session.reserves()
    return reserves.to_dict()


@router.get("/balance")
async def get_balance(
    address: Optional[str] = Query(default=None, description="Owner address (defaults to the connected wallet)"),
    session: SwapSession = Depends(get_swap_session),
) -> Dict[str, Any]:
    try:
        balance = await session.balance(address)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "address": address or (session.identity.address if session.identity else None),
        "raw": str(balance.value),
        "formatted": balance.human,
        "decimals": balance.decimals,
    }


@router.post("/refresh")
async def refresh_pool(session: SwapSession = Depends(get_swap_session)) -> Dict[str, Any]:
    """Refresh reserves and balance; failed reads come back as null"""
    snapshot = await session.refresh()
    return snapshot.to_dict()


@router.post("/liquidity")
async def add_liquidity(
    req: AddLiquidityRequest,
    session: SwapSession = Depends(get_swap_session),
) -> Dict[str, Any]:
    outcome = await session.add_liquidity(req.amount_a, req.amount_b)
    return {
        "transaction": outcome.to_dict(),
        "snapshot": session.snapshot.to_dict(),
    }
