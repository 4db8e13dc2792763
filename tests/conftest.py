import pytest

from fake_ledger import POOL, TOKEN, FakeLedger
from poolswap.config import Settings
from poolswap.core.session import SwapSession


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        rpc_url="http://ledger.test",
        pool_address=POOL,
        token_address=TOKEN,
        confirmation_timeout_seconds=2.0,
        receipt_poll_interval_seconds=0.001,
    )


@pytest.fixture
def session(ledger: FakeLedger, test_settings: Settings) -> SwapSession:
    return SwapSession(ledger, test_settings)
