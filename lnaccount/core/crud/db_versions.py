from typing import Optional, Union

from lnaccount.db import Connection, Database

from ..models import DbVersion


async def get_db_version(
    db: Union[Database, Connection], db_name: str
) -> Optional[DbVersion]:
    return await db.fetchone(
        "SELECT * FROM dbversions WHERE db = :db_name",
        {"db_name": db_name},
        model=DbVersion,
    )


async def get_db_versions(db: Union[Database, Connection]) -> list[DbVersion]:
    return await db.fetchall("SELECT * FROM dbversions", model=DbVersion)


async def update_migration_version(
    db: Union[Database, Connection], db_name: str, version: int
):
    await db.execute(
        """
        INSERT INTO dbversions (db, version) VALUES (:db, :version)
        ON CONFLICT (db) DO UPDATE SET version = :version
        """,
        {"db": db_name, "version": version},
    )
