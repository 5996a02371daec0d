import os
import sys
import tempfile
from functools import partial

import pytest

# Ensure repo root and 'src/' are on sys.path for imports like 'from core import dtos'
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

_SRC_PATH = os.path.join(_REPO_ROOT, "src")
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from core.dtos import DesignItem, DesignSnapshot, ItemMetadata  # noqa: E402
from core.errors import DesignNotFoundError  # noqa: E402
from core.services.checklist_service import ChecklistService  # noqa: E402
from infra.db.checklist_store import SqliteAggregateStore  # noqa: E402
from infra.db.conn import get_conn  # noqa: E402
from infra.db.schema import init_db  # noqa: E402
from infra.memory_store import InMemoryAggregateStore  # noqa: E402

API_ENV_VAR = "API_BASE_URL"
TOKEN_ENV_VAR = "API_SESSION_TOKEN"


def pytest_addoption(parser):
    parser.addoption(
        "--api-base-url",
        action="store",
        default=None,
        help="Override base URL for contract tests (e.g. http://localhost:8000/api)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "contract: mark a test as a contract test")
    config.addinivalue_line("markers", "coverage: coverage gate tests (need pytest --cov)")


@pytest.fixture(scope="session")
def api_base_url(pytestconfig):
    # Priority: CLI flag > env var > None (contract tests will skip)
    cli = pytestconfig.getoption("--api-base-url")
    if cli:
        return cli
    return os.environ.get(API_ENV_VAR)


@pytest.fixture(scope="session")
def api_session_token():
    return os.environ.get(TOKEN_ENV_VAR)


# --- Fake upstream services ---


class FakeDesigns:
    """Design snapshot gateway backed by a dict; tests edit ``designs`` freely."""

    def __init__(self):
        self.designs: dict[str, DesignSnapshot] = {}
        self.calls: list[str] = []

    def put(self, design_id: str, items: dict[int, int] | list[tuple[int, int]], title: str = ""):
        pairs = items.items() if isinstance(items, dict) else items
        self.designs[design_id] = DesignSnapshot(
            design_id=design_id,
            title=title or f"Design {design_id.upper()}",
            items=[DesignItem(item_id=i, quantity=q) for i, q in pairs],
        )

    def delete(self, design_id: str):
        self.designs.pop(design_id, None)

    def get_design_items(self, design_id: str) -> DesignSnapshot:
        self.calls.append(design_id)
        try:
            return self.designs[design_id]
        except KeyError:
            raise DesignNotFoundError(design_id) from None


class FakeCatalog:
    def __init__(self, entries: dict[int, str] | None = None):
        self.entries = dict(entries or {})
        self.broken: set[int] = set()

    def get_item_metadata(self, item_id: int) -> ItemMetadata | None:
        if item_id in self.broken:
            raise ConnectionError(f"catalog down for {item_id}")
        name = self.entries.get(item_id)
        if name is None:
            return None
        return ItemMetadata(
            item_id=item_id,
            name=name,
            icon_url=f"https://icons.example/{item_id}.png",
            source="Vendor",
        )


@pytest.fixture()
def designs():
    return FakeDesigns()


@pytest.fixture()
def catalog():
    return FakeCatalog({42: "Wooden Chair", 7: "Brass Lantern", 99: "Ornate Rug"})


# --- SQLite test DB fixtures ---


@pytest.fixture()
def temp_db_path():
    fd, path = tempfile.mkstemp(prefix="checklist_", suffix=".db")
    os.close(fd)
    try:
        yield path
    finally:
        for suffix in ("", "-wal", "-shm"):
            try:
                os.remove(path + suffix)
            except FileNotFoundError:
                pass


@pytest.fixture()
def connect(temp_db_path):
    """Connection factory bound to a fresh DB with the checklist schema."""
    factory = partial(get_conn, temp_db_path, busy_timeout_ms=30000)
    conn = factory()
    init_db(conn)
    conn.close()
    return factory


@pytest.fixture()
def conn_rw(connect):
    """Read/write SQLite connection for repo tests."""
    conn = connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def sqlite_store(connect):
    return SqliteAggregateStore(connect=connect)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        return InMemoryAggregateStore()
    return request.getfixturevalue("sqlite_store")


@pytest.fixture()
def service(store, designs, catalog):
    return ChecklistService(store=store, designs=designs, catalog=catalog)


def _check_invariants(rows):
    seen = set()
    for row in rows:
        key = (row.user_id, row.item_id)
        assert key not in seen, f"duplicate row {key}"
        seen.add(key)
        assert row.contributions, f"row {key} has no contributions"
        assert row.quantity_needed == sum(c.quantity for c in row.contributions)
        assert 0 <= row.quantity_acquired <= row.quantity_needed
        design_ids = [c.design_id for c in row.contributions]
        assert len(design_ids) == len(set(design_ids))
        assert all(c.quantity > 0 for c in row.contributions)


@pytest.fixture()
def check_invariants():
    """Assert invariants 1-5 over a user's raw rows."""
    return _check_invariants
