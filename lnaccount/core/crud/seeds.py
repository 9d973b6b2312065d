import os
from typing import Optional

from lnaccount.db import Connection, Database

from ..models import AuthSeed

SEED_LENGTH = 32


async def get_auth_seed(
    db: Database, conn: Optional[Connection] = None
) -> Optional[AuthSeed]:
    return await (conn or db).fetchone(
        "SELECT * FROM lnurl_auth_seed WHERE id = :id",
        {"id": "default"},
        AuthSeed,
    )


async def create_auth_seed(
    db: Database, seed: bytes, conn: Optional[Connection] = None
) -> AuthSeed:
    auth_seed = AuthSeed(seed=seed.hex())
    await (conn or db).insert("lnurl_auth_seed", auth_seed)
    return auth_seed


class SeedStore:
    def __init__(self, db: Database):
        self.db = db

    async def get_or_create(self) -> tuple[bytes, bool]:
        """
        Loads the link key seed, creating 32 random bytes on first use.
        Returns the seed and whether it was created by this call.
        """
        async with self.db.connect() as conn:
            auth_seed = await get_auth_seed(self.db, conn=conn)
            if auth_seed:
                return bytes.fromhex(auth_seed.seed), False
            seed = os.urandom(SEED_LENGTH)
            await create_auth_seed(self.db, seed, conn=conn)
            return seed, True
