"""
Wallet capability boundary.

The wallet is passed around explicitly as a ``WalletProvider`` so tests and
alternative signers can be swapped in. The shape follows EIP-1193: a single
``request(method, params)`` coroutine. ``JsonRpcWalletProvider`` talks to a
node or signer service that manages the user's accounts over HTTP.
"""

import itertools
import logging
from typing import Any, List, Optional, Protocol, runtime_checkable

import httpx

from ..errors import RpcError


logger = logging.getLogger(__name__)


@runtime_checkable
class WalletProvider(Protocol):
    """EIP-1193 style request interface."""

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        ...


class JsonRpcWalletProvider:
    """
    Wallet capability backed by a JSON-RPC endpoint.

    The endpoint must hold the user's keys (an unlocked node account or a
    remote signer); ``eth_sendTransaction`` is signed on that side and this
    client never sees key material.
    """

    name = "jsonrpc"

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not rpc_url:
            raise ValueError("rpc_url is required")
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        try:
            response = await self._client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise RpcError(f"RPC transport error on {method}: {e}") from e
        except ValueError as e:
            raise RpcError(f"Malformed RPC response on {method}: {e}") from e

        if not isinstance(result, dict):
            raise RpcError(f"Malformed RPC response on {method}: expected an object, got {type(result).__name__}")

        if "error" in result:
            error = result["error"] or {}
            if not isinstance(error, dict):
                error = {"message": error}
            raise RpcError(
                f"RPC error on {method}: {error.get('message', error)}",
                rpc_code=error.get("code"),
                data=error.get("data"),
            )

        return result.get("result")

    async def health_check(self) -> dict:
        try:
            chain_id = await self.request("eth_chainId")
            return {"status": "healthy", "chain_id": int(chain_id, 16)}
        except (RpcError, TypeError, ValueError) as e:
            return {"status": "error", "reason": str(e)}

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
