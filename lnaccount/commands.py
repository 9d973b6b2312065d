import asyncio
import json
from functools import wraps
from typing import Optional

import click
from loguru import logger

from lnaccount.core import account_database
from lnaccount.core.crud import PayInfoStore, SeedStore, get_db_versions
from lnaccount.core.helpers import migrate_databases
from lnaccount.core.models import (
    LnurlAuth,
    LnurlPay,
    LnurlPayRequest,
    LnurlWithdraw,
)
from lnaccount.core.services import (
    AuthFlow,
    LinkKeyDeriver,
    LnurlClient,
    PayFlow,
    SweepPlanner,
    WithdrawFlow,
)
from lnaccount.db import Database
from lnaccount.exceptions import AccountError, UnsupportedResponse
from lnaccount.settings import settings
from lnaccount.utils.logger import configure_logger, log_account_info
from lnaccount.wallets import get_wallet_rpc


def coro(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(f(*args, **kwargs))
        except AccountError as exc:
            raise click.ClickException(exc.message) from exc

    return wrapper


async def migrated_database() -> Database:
    db = account_database()
    await migrate_databases(db)
    return db


async def request_seed_backup():
    logger.warning(
        "A new lnurl-auth seed was created. "
        f"Back up the database in '{settings.account_data_folder}'."
    )


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging.")
def account_cli(debug: bool):
    """
    Python CLI for the account outbound-value subsystem
    """
    if debug:
        settings.debug = True
    configure_logger()


@account_cli.group()
def db():
    """
    Database related commands
    """


@account_cli.group()
def lnurl():
    """
    LNURL client commands
    """


@account_cli.group()
def sweep():
    """
    On-chain sweep commands
    """


@db.command("migrate")
@coro
async def database_migrate():
    """Migrate databases"""
    database = account_database()
    try:
        await migrate_databases(database)
    finally:
        await database.dispose()


@db.command("versions")
@coro
async def database_versions():
    """Show current database versions"""
    database = account_database()
    try:
        versions = await get_db_versions(database)
    finally:
        await database.dispose()
    for version in versions:
        click.echo(f"{version.db}: {version.version}")


@lnurl.command("resolve")
@click.argument("text")
@coro
async def lnurl_resolve(text: str):
    """Resolve an LNURL, lightning address or LUD-17 url"""
    async with LnurlClient() as client:
        res = await client.resolve(text)
    click.echo(res.model_dump_json(indent=2))


@lnurl.command("auth")
@click.argument("text")
@click.option("--jwt", is_flag=True, help="Request a JWT session token.")
@coro
async def lnurl_auth(text: str, jwt: bool):
    """Log in to a service with LNURL-auth"""
    database = await migrated_database()
    deriver = LinkKeyDeriver(SeedStore(database), on_seed_created=request_seed_backup)
    try:
        async with LnurlClient() as client:
            res = await client.resolve(text)
            if not isinstance(res, LnurlAuth):
                raise UnsupportedResponse(f"Expected LNURL-auth, got '{res.tag}'.")
            if jwt:
                res.jwt = True
            token = await AuthFlow(client, deriver).finish(res)
    finally:
        await database.dispose()
    click.echo(f"Logged in to {res.host}.")
    if token:
        click.echo(f"Token: {token}")


@lnurl.command("withdraw")
@click.argument("text")
@click.argument("invoice")
@coro
async def lnurl_withdraw(text: str, invoice: str):
    """Ask an LNURL-withdraw service to pay INVOICE"""
    async with LnurlClient() as client:
        res = await client.resolve(text)
        if not isinstance(res, LnurlWithdraw):
            raise UnsupportedResponse(f"Expected LNURL-withdraw, got '{res.tag}'.")
        click.echo(
            f"Withdrawable: {res.min_amount} - {res.max_amount} sat. "
            f"{res.default_description}"
        )
        await WithdrawFlow(client).finish(invoice)
    click.echo("Withdraw request accepted.")


@lnurl.command("pay")
@click.argument("text")
@click.option("-a", "--amount", required=True, type=int, help="Amount in msat.")
@click.option("-c", "--comment", help="Comment for the service.")
@coro
async def lnurl_pay(text: str, amount: int, comment: Optional[str] = None):
    """Fetch and verify an invoice from an LNURL-pay service"""
    database = await migrated_database()
    try:
        async with LnurlClient() as client:
            res = await client.resolve(text)
            if not isinstance(res, LnurlPay):
                raise UnsupportedResponse(f"Expected LNURL-pay, got '{res.tag}'.")
            request = LnurlPayRequest(
                callback=res.callback, amount=amount, comment=comment, host=res.host
            )
            info = await PayFlow(client, PayInfoStore(database)).finish(request)
    finally:
        await database.dispose()
    click.echo(info.model_dump_json(indent=2))


@lnurl.command("decrypt")
@click.argument("payment_hash")
@click.argument("preimage")
@coro
async def lnurl_decrypt(payment_hash: str, preimage: str):
    """Decrypt the aes success action of a paid LNURL-pay invoice"""
    database = await migrated_database()
    try:
        async with LnurlClient() as client:
            flow = PayFlow(client, PayInfoStore(database))
            message = await flow.decrypt_success_action(payment_hash, preimage)
    finally:
        await database.dispose()
    click.echo(message)


@sweep.command("plan")
@click.argument("address")
@coro
async def sweep_plan(address: str):
    """Craft transactions sweeping all coins to ADDRESS"""
    log_account_info()
    rpc = get_wallet_rpc()
    try:
        result = await SweepPlanner(rpc).plan(address)
    finally:
        await rpc.cleanup()
    click.echo(f"Amount: {result.amount} sat")
    click.echo(
        json.dumps(
            {
                target: {"txid": tx.txid, "fee": tx.fee, "raw_tx": tx.raw_tx_hex}
                for target, tx in result.transactions.items()
            },
            indent=2,
        )
    )


@sweep.command("publish")
@click.argument("raw_tx_hex")
@coro
async def sweep_publish(raw_tx_hex: str):
    """Broadcast a raw transaction"""
    try:
        raw_tx = bytes.fromhex(raw_tx_hex)
    except ValueError as exc:
        raise click.BadParameter("not a hex string", param_hint="RAW_TX_HEX") from exc
    rpc = get_wallet_rpc()
    try:
        await SweepPlanner(rpc).publish_transaction(raw_tx)
    finally:
        await rpc.cleanup()
    click.echo("Transaction published.")


def main():
    """main function"""
    account_cli()


if __name__ == "__main__":
    main()
