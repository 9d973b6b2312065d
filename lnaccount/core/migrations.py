from lnaccount.db import Connection


async def m000_create_migrations_table(db: Connection):
    await db.execute(
        """
    CREATE TABLE IF NOT EXISTS dbversions (
        db TEXT PRIMARY KEY,
        version INT NOT NULL
    )
    """
    )


async def m001_lnurl_pay_info(db: Connection):
    """
    Completed LNURL-pay flows, keyed by the invoice payment hash.
    """
    await db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS lnurl_pay_info (
            payment_hash TEXT PRIMARY KEY,
            invoice TEXT NOT NULL,
            host TEXT NOT NULL,
            comment TEXT,
            metadata TEXT NOT NULL,
            invoice_description TEXT,
            success_action TEXT,
            created_at {db.big_int} NOT NULL
        );
    """
    )


async def m002_lnurl_auth_seed(db: Connection):
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS lnurl_auth_seed (
            id TEXT PRIMARY KEY,
            seed TEXT NOT NULL
        );
    """
    )
