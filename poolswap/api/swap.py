from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.errors import InvalidAmount
from ..core.session import SwapSession, get_swap_session


router = APIRouter(prefix="/swap")


class SwapExecuteRequest(BaseModel):
    amount_in: str = Field(description="Amount of the input token (human units unless raw is set)")
    raw: bool = Field(default=False, description="Treat amount_in as an integer in minor units")
    min_amount_out: Optional[int] = Field(
        default=None,
        ge=0,
        description="Minimum output in minor units; omitted means the configured default (0 = no slippage protection)",
    )


@router.post("")
async def post_swap(
    req: SwapExecuteRequest,
    session: SwapSession = Depends(get_swap_session),
) -> Dict[str, Any]:
    """Run one allowance-gated swap to a terminal state.

    Failed runs still return 200 with ``state == "failed"``; only a request
    that cannot start (busy) is rejected with an error status.
    """
    amount_in: Any = req.amount_in
    if req.raw:
        try:
            amount_in = int(req.amount_in.strip())
        except ValueError as exc:
            raise InvalidAmount(f"Raw amount must be an integer: {req.amount_in!r}") from exc

    run = await session.swap(amount_in, req.min_amount_out)
    return run.to_dict()
