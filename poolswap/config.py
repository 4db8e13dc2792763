from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_zero_address(address: str | None) -> bool:
    """Return ``True`` for empty or all-zero placeholder addresses."""

    if not address:
        return True
    raw = address.strip().lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    return not raw or set(raw) == {"0"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize placeholder addresses so downstream checks stay simple."""

        super().model_post_init(__context)

        for field_name in ("pool_address", "token_address"):
            value = (getattr(self, field_name) or "").strip()
            if is_zero_address(value):
                value = ZERO_ADDRESS
            object.__setattr__(self, field_name, value)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Wallet / ledger endpoint
    rpc_url: str = Field(
        default="",
        description="JSON-RPC endpoint of the wallet capability (empty disables wallet access)",
        validation_alias=AliasChoices("rpc_url", "wallet_rpc_url", "RPC_URL", "WALLET_RPC_URL"),
    )
    request_timeout_seconds: int = Field(default=30, description="Per-request RPC timeout")

    # Ledger programs
    pool_address: str = Field(
        default=ZERO_ADDRESS,
        description="Address of the pool program",
        validation_alias=AliasChoices("pool_address", "amm_address", "VITE_AMM_ADDRESS"),
    )
    token_address: str = Field(
        default=ZERO_ADDRESS,
        description="Address of the token program swapped into the pool",
        validation_alias=AliasChoices("token_address", "VITE_TOKEN_ADDRESS"),
    )

    # Transaction confirmation
    confirmation_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Max seconds to wait for a submitted transaction to confirm",
    )
    receipt_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Delay between receipt polls while waiting for confirmation",
    )
    required_confirmations: int = Field(
        default=1,
        ge=1,
        description="Blocks required on top of the receipt block (inclusive)",
    )

    # Amounts
    default_token_decimals: int = Field(
        default=18,
        ge=0,
        le=255,
        description="Decimals used when the token decimals() query fails",
    )
    default_min_amount_out: int = Field(
        default=0,
        ge=0,
        description="Minimum output passed to the pool when callers omit one (0 disables slippage protection)",
    )

    @property
    def has_wallet_rpc(self) -> bool:
        return bool(self.rpc_url.strip())

    @property
    def pool_configured(self) -> bool:
        return not is_zero_address(self.pool_address)

    @property
    def token_configured(self) -> bool:
        return not is_zero_address(self.token_address)


# Global settings instance
settings = Settings()
