"""
Pytest fixtures for auto-discount tests.
"""

from decimal import Decimal

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from autodiscount_core.catalog.stub import StubCatalogClient
from autodiscount_core.engines.oscillation import PriceOscillationEngine
from autodiscount_core.locks import InMemoryShopLocks
from autodiscount_core.persistence.models import AutoDiscountBase
from autodiscount_core.persistence.repo import AutoDiscountRepository


@pytest.fixture
def db_engine(tmp_path):
    """SQLite database file per test (each session gets its own connection)."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'autodiscount.db'}",
        connect_args={"check_same_thread": False},
    )
    AutoDiscountBase.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Sessionmaker configured like basecore.db.get_sessionmaker."""
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Database session for arranging and asserting."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db_session):
    return AutoDiscountRepository(db_session)


@pytest.fixture
def shop():
    """Sample shop domain."""
    return "alpha.myshopify.com"


class StubCatalog:
    """
    Hands out one StubCatalogClient per shop and keeps them for assertions.

    Per-shop scripting (field errors, transport errors, delays) is set up
    before the sweep via configure().
    """

    def __init__(self):
        self.clients: dict[str, list[StubCatalogClient]] = {}
        self.options: dict[str, dict] = {}

    def configure(self, shop: str, **options):
        self.options[shop] = options

    def __call__(self, credential) -> StubCatalogClient:
        client = StubCatalogClient(shop=credential.shop, **self.options.get(credential.shop, {}))
        self.clients.setdefault(credential.shop, []).append(client)
        return client

    def calls(self, shop: str | None = None) -> list[dict]:
        shops = [shop] if shop else list(self.clients)
        return [call for s in shops for client in self.clients.get(s, []) for call in client.calls]


@pytest.fixture
def catalog():
    return StubCatalog()


@pytest.fixture
def lock_manager():
    return InMemoryShopLocks()


@pytest.fixture
def engine(session_factory, catalog, lock_manager):
    """Engine wired to the test database and the stub catalog."""
    return PriceOscillationEngine(
        session_factory=session_factory,
        client_factory=catalog,
        lock_manager=lock_manager,
        item_timeout_seconds=5.0,
    )


@pytest.fixture
def connected_shop(db_session, repo, shop):
    """A shop with automation on and a stored credential, but no enrollments."""
    repo.save_settings(shop, auto_discount=True)
    repo.upsert_credential(shop, "shpat_test_token", scope="write_products")
    db_session.commit()
    return shop


@pytest.fixture
def enroll(db_session):
    """Enroll a product and commit; variant defaults to "<product_id>-v1"."""

    def _enroll(shop: str, product_id: str, price: str, variant_id: str | None = None):
        repo = AutoDiscountRepository(db_session)
        enrollment, _ = repo.enroll_product(
            shop,
            product_id=product_id,
            variant_id=variant_id or f"{product_id}-v1",
            title=f"Product {product_id}",
            price=Decimal(price),
        )
        db_session.commit()
        return enrollment

    return _enroll


@pytest.fixture
def fetch(session_factory):
    """Read an enrollment through a fresh session (bypasses the identity map)."""

    def _fetch(shop: str, product_id: str):
        session = session_factory()
        try:
            return AutoDiscountRepository(session).get_enrollment(shop, product_id)
        finally:
            session.close()

    return _fetch


class FakeRedis:
    """Just enough of redis.Redis for SET NX PX and the lease scripts."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.renewals: list[str] = []
        self.fail_eval = False

    def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = px
        return True

    def eval(self, script, numkeys, key, token, *args):
        if self.fail_eval:
            raise redis.ConnectionError("connection lost")
        if self.store.get(key) != token:
            return 0
        if "pexpire" in script:
            self.ttls[key] = int(args[0])
            self.renewals.append(key)
        else:
            del self.store[key]
            self.ttls.pop(key, None)
        return 1

    def expire_now(self, key):
        """Drop a key as if its TTL ran out."""
        self.store.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def fake_redis():
    return FakeRedis()
