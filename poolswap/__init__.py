"""Client-side orchestration of token swaps against an on-ledger liquidity pool."""

__version__ = "0.1.0"
