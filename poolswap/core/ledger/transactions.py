"""
Transaction submission and confirmation monitoring.

Submitting only proves the signer accepted the transaction. Dependent steps
must ``wait`` for ``CONFIRMED`` before acting on its effect.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import ConfirmationTimeout, RpcError, TransactionFailed, TransactionRejected
from ..wallet.provider import WalletProvider
from .abi import decode_revert_reason
from .models import TransactionOutcome, TransactionStatus, TransactionType


logger = logging.getLogger(__name__)


class TransactionMonitor:
    """
    Sends transactions through the wallet and waits for their receipts.

    Responsibilities:
    - Submit via ``eth_sendTransaction`` (the wallet signs)
    - Classify signer rejections vs. submission failures
    - Poll for the receipt until confirmed, reverted or timed out
    """

    def __init__(
        self,
        provider: WalletProvider,
        *,
        confirmation_timeout_seconds: float = 120.0,
        poll_interval_seconds: float = 2.0,
        required_confirmations: int = 1,
    ):
        self.provider = provider
        self.confirmation_timeout_seconds = confirmation_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.required_confirmations = required_confirmations

    async def submit(
        self,
        tx_type: TransactionType,
        sender: str,
        to: str,
        data: str,
    ) -> TransactionOutcome:
        tx: Dict[str, Any] = {"from": sender, "to": to, "data": data, "value": "0x0"}

        try:
            tx_hash = await self.provider.request("eth_sendTransaction", [tx])
        except RpcError as e:
            if e.is_user_rejection:
                raise TransactionRejected(f"{tx_type.value} rejected by signer: {e.message}") from e
            reason = decode_revert_reason(e.data) or e.message
            raise TransactionFailed(f"{tx_type.value} submission failed: {reason}", reason=reason) from e

        if not isinstance(tx_hash, str) or not tx_hash:
            raise TransactionFailed(f"{tx_type.value} submission returned no transaction hash")

        logger.info(f"Transaction submitted: {tx_type.value} {tx_hash}")
        return TransactionOutcome(tx_type=tx_type, tx_hash=tx_hash)

    async def wait(
        self,
        outcome: TransactionOutcome,
        timeout_seconds: Optional[float] = None,
    ) -> TransactionOutcome:
        """
        Wait for a submitted transaction to become final.

        Returns the outcome marked ``CONFIRMED`` or ``FAILED`` (reverted).

        Raises:
            ConfirmationTimeout: if the receipt is not final in time. The
                transaction may still land afterwards.
        """
        if outcome.is_final:
            return outcome

        timeout = timeout_seconds if timeout_seconds is not None else self.confirmation_timeout_seconds
        try:
            return await asyncio.wait_for(self._poll_receipt(outcome), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Confirmation timeout: {outcome.tx_hash} after {timeout:g}s")
            raise ConfirmationTimeout(outcome.tx_hash, timeout)

    async def _poll_receipt(self, outcome: TransactionOutcome) -> TransactionOutcome:
        while True:
            try:
                receipt = await self.provider.request("eth_getTransactionReceipt", [outcome.tx_hash])
                if receipt:
                    block_number = int(receipt["blockNumber"], 16)
                    outcome.block_number = block_number
                    outcome.gas_used = int(receipt.get("gasUsed", "0x0"), 16)

                    # 0x1 = success, 0x0 = revert
                    if int(receipt.get("status", "0x1"), 16) == 0:
                        outcome.status = TransactionStatus.FAILED
                        outcome.reason = "execution reverted"
                        logger.warning(f"Transaction reverted: {outcome.tx_hash}")
                        return outcome

                    current_block = int(await self.provider.request("eth_blockNumber"), 16)
                    confirmations = current_block - block_number + 1
                    if confirmations >= self.required_confirmations:
                        outcome.status = TransactionStatus.CONFIRMED
                        outcome.confirmed_at = datetime.now(timezone.utc)
                        logger.info(
                            f"Transaction confirmed: {outcome.tx_hash} "
                            f"(block {block_number}, {confirmations} confirmations)"
                        )
                        return outcome
            except (RpcError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Error checking transaction status: {e}")

            await asyncio.sleep(self.poll_interval_seconds)
