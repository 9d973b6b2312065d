from lnaccount.db import Database


def account_database(db_name: str = "account") -> Database:
    """The account database, sqlite in the data folder unless a postgres url is set."""
    return Database(db_name)
