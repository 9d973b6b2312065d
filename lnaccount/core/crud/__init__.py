from .db_versions import (
    get_db_version,
    get_db_versions,
    update_migration_version,
)
from .pay_info import (
    PayInfoStore,
    create_pay_info,
    get_pay_info,
    get_pay_infos,
    update_pay_info,
)
from .seeds import SeedStore, create_auth_seed, get_auth_seed

__all__ = [
    # db_versions
    "get_db_version",
    "get_db_versions",
    "update_migration_version",
    # pay_info
    "PayInfoStore",
    "create_pay_info",
    "get_pay_info",
    "get_pay_infos",
    "update_pay_info",
    # seeds
    "SeedStore",
    "create_auth_seed",
    "get_auth_seed",
]
