"""
Typed proxies for the token and pool programs.

Reads are ``eth_call`` round trips against the latest state and never
mutate it. Writes return a ``SUBMITTED`` outcome; callers wait on it
through ``wait_for_confirmation`` before relying on the effect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from eth_utils import to_checksum_address

from ...config import ZERO_ADDRESS, is_zero_address
from ..amounts import DEFAULT_DECIMALS, TokenAmount
from ..errors import NotConnected, ReadError, RpcError
from ..wallet.identity import Identity
from ..wallet.provider import WalletProvider
from . import abi
from .models import PoolReserves, TransactionOutcome, TransactionType
from .transactions import TransactionMonitor


logger = logging.getLogger(__name__)


class ContractBinding:
    """Common plumbing for a program at a fixed address."""

    label = "contract"

    def __init__(
        self,
        provider: WalletProvider,
        address: str,
        monitor: TransactionMonitor,
        sender: Optional[str] = None,
    ):
        self.provider = provider
        self.address = address
        self.monitor = monitor
        self.sender = sender

    @property
    def is_configured(self) -> bool:
        return not is_zero_address(self.address)

    async def _call(self, signature: str, *args, words: int = 1):
        if not self.is_configured:
            raise ReadError(f"{self.label} address not configured")

        calldata = abi.encode_call(signature, *args)
        try:
            result = await self.provider.request(
                "eth_call",
                [{"to": self.address, "data": calldata}, "latest"],
            )
            return abi.decode_uint256_words(result, words)
        except RpcError as e:
            raise ReadError(f"{self.label}.{signature} failed: {e.message}") from e
        except ValueError as e:
            raise ReadError(f"{self.label}.{signature} returned bad data: {e}") from e

    async def _send(self, tx_type: TransactionType, signature: str, *args) -> TransactionOutcome:
        if not self.sender:
            raise NotConnected()
        calldata = abi.encode_call(signature, *args)
        return await self.monitor.submit(tx_type, self.sender, self.address, calldata)

    async def wait_for_confirmation(
        self,
        outcome: TransactionOutcome,
        timeout_seconds: Optional[float] = None,
    ) -> TransactionOutcome:
        return await self.monitor.wait(outcome, timeout_seconds)


class TokenContract(ContractBinding):
    """Fungible-token program: balanceOf / allowance / approve / decimals."""

    label = "token"

    async def decimals(self) -> int:
        (value,) = await self._call(abi.TOKEN_DECIMALS)
        if value > 255:
            raise ReadError(f"token.decimals() out of range: {value}")
        return value

    async def decimals_or_default(self, default: int = DEFAULT_DECIMALS) -> int:
        """Token decimals, falling back to ``default`` when the query fails."""
        try:
            return await self.decimals()
        except ReadError as e:
            logger.warning(f"decimals() unavailable, using {default}: {e.message}")
            return default

    async def balance_of(self, owner: str, decimals: Optional[int] = None) -> TokenAmount:
        (value,) = await self._call(abi.TOKEN_BALANCE_OF, owner)
        if decimals is None:
            decimals = await self.decimals_or_default()
        return TokenAmount(value, decimals)

    async def allowance(self, owner: str, spender: str) -> int:
        (value,) = await self._call(abi.TOKEN_ALLOWANCE, owner, spender)
        return value

    async def approve(self, spender: str, amount: int) -> TransactionOutcome:
        return await self._send(TransactionType.APPROVE, abi.TOKEN_APPROVE, spender, amount)


class PoolContract(ContractBinding):
    """Two-asset pool program."""

    label = "pool"

    async def get_reserves(self) -> PoolReserves:
        reserve_a, reserve_b = await self._call(abi.POOL_GET_RESERVES, words=2)
        return PoolReserves(reserve_a=reserve_a, reserve_b=reserve_b)

    async def swap_exact_tokens_for_tokens(self, amount_in: int, min_amount_out: int = 0) -> TransactionOutcome:
        return await self._send(
            TransactionType.SWAP,
            abi.POOL_SWAP_EXACT_TOKENS_FOR_TOKENS,
            amount_in,
            min_amount_out,
        )

    async def add_liquidity(self, amount_a: int, amount_b: int) -> TransactionOutcome:
        return await self._send(
            TransactionType.ADD_LIQUIDITY,
            abi.POOL_ADD_LIQUIDITY,
            amount_a,
            amount_b,
        )


@dataclass(frozen=True)
class BoundContracts:
    token: TokenContract
    pool: PoolContract


class ContractBinder:
    """Produces token/pool proxies, optionally bound to a signing identity."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        token_address: str,
        pool_address: str,
        monitor: Optional[TransactionMonitor] = None,
    ):
        self.provider = provider
        self.token_address = self._normalize(token_address)
        self.pool_address = self._normalize(pool_address)
        self.monitor = monitor or TransactionMonitor(provider)

    @staticmethod
    def _normalize(address: str) -> str:
        if is_zero_address(address):
            return ZERO_ADDRESS
        return to_checksum_address(address)

    @property
    def token_configured(self) -> bool:
        return not is_zero_address(self.token_address)

    @property
    def pool_configured(self) -> bool:
        return not is_zero_address(self.pool_address)

    def bind(self, identity: Optional[Identity]) -> BoundContracts:
        sender = identity.address if identity else None
        return BoundContracts(
            token=TokenContract(self.provider, self.token_address, self.monitor, sender),
            pool=PoolContract(self.provider, self.pool_address, self.monitor, sender),
        )

    def readonly(self) -> BoundContracts:
        return self.bind(None)
