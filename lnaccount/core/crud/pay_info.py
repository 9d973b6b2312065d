from typing import Optional

from lnaccount.db import Connection, Database

from ..models import PayInfo


async def create_pay_info(
    db: Database, info: PayInfo, conn: Optional[Connection] = None
) -> PayInfo:
    await (conn or db).insert("lnurl_pay_info", info)
    return info


async def get_pay_info(
    db: Database, payment_hash: str, conn: Optional[Connection] = None
) -> Optional[PayInfo]:
    return await (conn or db).fetchone(
        "SELECT * FROM lnurl_pay_info WHERE payment_hash = :payment_hash",
        {"payment_hash": payment_hash},
        PayInfo,
    )


async def get_pay_infos(
    db: Database, conn: Optional[Connection] = None
) -> list[PayInfo]:
    return await (conn or db).fetchall(
        "SELECT * FROM lnurl_pay_info ORDER BY created_at DESC",
        model=PayInfo,
    )


async def update_pay_info(
    db: Database, info: PayInfo, conn: Optional[Connection] = None
) -> PayInfo:
    await (conn or db).update(
        "lnurl_pay_info", info, "WHERE payment_hash = :payment_hash"
    )
    return info


class PayInfoStore:
    """Persistence of completed pay flows on top of a `Database`."""

    def __init__(self, db: Database):
        self.db = db

    async def save(self, info: PayInfo, conn: Optional[Connection] = None):
        return await create_pay_info(self.db, info, conn=conn)

    async def get(
        self, payment_hash: str, conn: Optional[Connection] = None
    ) -> Optional[PayInfo]:
        return await get_pay_info(self.db, payment_hash, conn=conn)

    async def list(self, conn: Optional[Connection] = None) -> list[PayInfo]:
        return await get_pay_infos(self.db, conn=conn)

    async def update(self, info: PayInfo, conn: Optional[Connection] = None):
        return await update_pay_info(self.db, info, conn=conn)
