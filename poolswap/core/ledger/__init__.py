"""
Ledger Binding Layer

Typed read/write proxies for the token and pool programs:
- TokenContract / PoolContract: bound program proxies
- ContractBinder: binds proxies to the active signing identity
- TransactionMonitor: submission and confirmation waiting

Usage:
    binder = ContractBinder(provider, token_address, pool_address)
    contracts = binder.bind(identity)

    outcome = await contracts.token.approve(contracts.pool.address, 500)
    outcome = await contracts.token.wait_for_confirmation(outcome)
"""

from .contracts import BoundContracts, ContractBinder, PoolContract, TokenContract
from .models import PoolReserves, TransactionOutcome, TransactionStatus, TransactionType
from .transactions import TransactionMonitor

__all__ = [
    "BoundContracts",
    "ContractBinder",
    "PoolContract",
    "TokenContract",
    "PoolReserves",
    "TransactionOutcome",
    "TransactionStatus",
    "TransactionType",
    "TransactionMonitor",
]
