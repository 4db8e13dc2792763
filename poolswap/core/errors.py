"""
Error taxonomy for wallet, ledger and swap orchestration failures.

Every error carries a stable ``code`` so the HTTP and CLI surfaces can map
it without string matching. Network and ledger errors are never retried
automatically; the message keeps the underlying detail so a user can decide
whether to retry by hand.
"""

from typing import Any, Optional


class PoolSwapError(Exception):
    """Base class for all poolswap errors."""

    code: str = "POOLSWAP_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NoWalletCapability(PoolSwapError):
    """No wallet capability was supplied to the session."""

    code = "NO_WALLET_CAPABILITY"

    def __init__(self, message: str = "No wallet capability available"):
        super().__init__(message)


class WalletAuthorizationDenied(PoolSwapError):
    """The wallet refused account access."""

    code = "WALLET_AUTHORIZATION_DENIED"

    def __init__(self, message: str = "Wallet authorization denied"):
        super().__init__(message)


class NotConnected(PoolSwapError):
    """An operation needed a signing identity but none is active."""

    code = "NOT_CONNECTED"

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class InvalidAmount(PoolSwapError):
    """Amount is not a finite, non-negative number (or is out of range)."""

    code = "INVALID_AMOUNT"


class RpcError(PoolSwapError):
    """JSON-RPC transport or protocol failure."""

    code = "RPC_ERROR"

    def __init__(
        self,
        message: str,
        rpc_code: Optional[int] = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.rpc_code = rpc_code
        self.data = data

    @property
    def is_user_rejection(self) -> bool:
        # EIP-1193 "User Rejected Request"
        return self.rpc_code == 4001


class ReadError(PoolSwapError):
    """A view call (balance, allowance, reserves, decimals) failed."""

    code = "READ_ERROR"


class TransactionRejected(PoolSwapError):
    """The signer declined to sign or send the transaction."""

    code = "TRANSACTION_REJECTED"


class TransactionFailed(PoolSwapError):
    """The transaction could not be submitted or reverted on the ledger."""

    code = "TRANSACTION_FAILED"

    def __init__(self, message: str, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message
        self.tx_hash = tx_hash


class ConfirmationTimeout(PoolSwapError):
    """A submitted transaction did not confirm within the allowed time.

    The transaction may still land later; callers must not read this as
    "nothing happened".
    """

    code = "CONFIRMATION_TIMEOUT"

    def __init__(self, tx_hash: Optional[str], timeout_seconds: float):
        super().__init__(
            f"Transaction {tx_hash or '<unknown>'} not confirmed after {timeout_seconds:g}s"
        )
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


class OrchestrationBusy(PoolSwapError):
    """A swap is already in flight for this identity."""

    code = "ORCHESTRATION_BUSY"

    def __init__(self, address: str):
        super().__init__(f"A swap is already in progress for {address}")
        self.address = address
