import os
import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import ledgermart`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from ledgermart.config import ConfigManager, LedgerMartConfig  # noqa: E402
from ledgermart.contract import AssetMarketplace  # noqa: E402
from ledgermart.events import Event, EventBus  # noqa: E402
from ledgermart.host import InMemoryLedger  # noqa: E402

ADMIN = "SP-ADMIN"
ALICE = "SP-ALICE"


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless LEDGERMART_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('LEDGERMART_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set LEDGERMART_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    """Each test starts from default configuration with no LEDGERMART_* overrides."""
    for key in list(os.environ):
        if key.startswith("LEDGERMART_") and key != "LEDGERMART_RUN_SLOW":
            monkeypatch.delenv(key, raising=False)
    ConfigManager().reset()
    yield
    ConfigManager().reset()


@pytest.fixture
def host() -> InMemoryLedger:
    return InMemoryLedger(block_height=100)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(bus):
    """Every event published on ``bus``, in order."""
    seen = []

    @bus.subscribe(Event)
    def _record(event):
        seen.append(event)

    return seen


@pytest.fixture
def market(host, bus) -> AssetMarketplace:
    return AssetMarketplace(deployer=ADMIN, host=host, config=LedgerMartConfig(), event_bus=bus)


@pytest.fixture
def alice_asset(market) -> int:
    """A transferable asset owned by ALICE."""
    return market.create_asset(ALICE, "ipfs://QmAliceItem", True).unwrap()
