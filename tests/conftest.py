import pytest

from lnaccount.core.crud import PayInfoStore, SeedStore
from lnaccount.core.helpers import migrate_databases
from lnaccount.core.services import LnurlClient
from lnaccount.db import Database
from lnaccount.settings import Settings
from lnaccount.settings import settings as account_settings


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def httpserver_listen_address():
    # plain http lnurls are only accepted for the loopback ip
    return ("127.0.0.1", 0)


@pytest.fixture(scope="session")
def settings():
    # override settings for tests
    account_settings.account_data_folder = "./tests/data"
    account_settings.account_database_url = None
    account_settings.user_agent = "lnaccount/Tests"

    yield account_settings


@pytest.fixture(autouse=True)
def run_before_and_after_tests(settings: Settings):
    """Fixture to execute asserts before and after a test is run"""
    _settings_cleanup(settings)
    yield  # this is where the testing happens
    _settings_cleanup(settings)


@pytest.fixture
async def db(tmp_path):
    database = Database("account", data_folder=str(tmp_path))
    await migrate_databases(database)
    yield database
    await database.dispose()


@pytest.fixture
def pay_info_store(db: Database) -> PayInfoStore:
    return PayInfoStore(db)


@pytest.fixture
def seed_store(db: Database) -> SeedStore:
    return SeedStore(db)


@pytest.fixture
async def lnurl_client():
    client = LnurlClient()
    yield client
    await client.close()


def _settings_cleanup(settings: Settings):
    settings.network = "main"
    settings.lnurl_callback_url_rules = []
    settings.lnurl_auth_max_derivation_attempts = 100
    settings.sweep_conf_targets = [2, 6, 25]
    settings.sweep_dust_limit_sat = 573
