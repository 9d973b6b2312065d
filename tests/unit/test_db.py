from datetime import datetime, timezone

import pytest

from lnaccount.core.crud import PayInfoStore, SeedStore, get_db_version, get_db_versions
from lnaccount.core.helpers import migrate_databases
from lnaccount.core.models import PayInfo, SuccessAction
from lnaccount.db import Database, insert_query, model_to_dict, update_query
from tests.helpers import METADATA


def _pay_info(payment_hash: str = "aa" * 32, **kwargs) -> PayInfo:
    return PayInfo(
        payment_hash=payment_hash,
        invoice="lnbc1invoice",
        host="service.com",
        metadata=METADATA,
        **kwargs,
    )


def test_insert_query():
    query = insert_query("lnurl_pay_info", _pay_info())
    assert query.startswith('INSERT INTO lnurl_pay_info ("payment_hash", ')
    assert ":payment_hash" in query


def test_update_query():
    query = update_query(
        "lnurl_pay_info", _pay_info(), "WHERE payment_hash = :payment_hash"
    )
    assert query.startswith('UPDATE lnurl_pay_info SET "payment_hash" = :payment_hash')
    assert query.endswith("WHERE payment_hash = :payment_hash")


def test_model_to_dict_serializes_nested_models():
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    info = _pay_info(
        success_action=SuccessAction(tag="url", url="https://service.com/thanks"),
        created_at=created_at,
    )
    values = model_to_dict(info)
    assert values["created_at"] == int(created_at.timestamp())
    assert isinstance(values["success_action"], str)
    assert '"url"' in values["success_action"]


@pytest.mark.anyio
async def test_migrations_are_recorded(db: Database):
    versions = await get_db_versions(db)
    assert [(v.db, v.version) for v in versions] == [("core", 2)]
    version = await get_db_version(db, "core")
    assert version and version.version == 2


@pytest.mark.anyio
async def test_migrations_are_idempotent(db: Database):
    await migrate_databases(db)
    versions = await get_db_versions(db)
    assert len(versions) == 1


@pytest.mark.anyio
async def test_pay_info_roundtrip(pay_info_store: PayInfoStore):
    info = _pay_info(
        comment="thanks",
        invoice_description="hi",
        success_action=SuccessAction(tag="message", message="enjoy"),
    )
    await pay_info_store.save(info)

    stored = await pay_info_store.get(info.payment_hash)
    assert stored
    assert stored.comment == "thanks"
    assert stored.success_action == info.success_action
    assert stored.created_at.tzinfo is not None

    assert await pay_info_store.get("bb" * 32) is None


@pytest.mark.anyio
async def test_pay_info_list_and_update(pay_info_store: PayInfoStore):
    first = _pay_info("aa" * 32)
    second = _pay_info("bb" * 32, success_action=SuccessAction(tag="aes"))
    await pay_info_store.save(first)
    await pay_info_store.save(second)

    assert {info.payment_hash for info in await pay_info_store.list()} == {
        "aa" * 32,
        "bb" * 32,
    }

    assert second.success_action
    second.success_action.message = "decrypted"
    await pay_info_store.update(second)

    stored = await pay_info_store.get("bb" * 32)
    assert stored and stored.success_action
    assert stored.success_action.message == "decrypted"
    stored_first = await pay_info_store.get("aa" * 32)
    assert stored_first and stored_first.success_action is None


@pytest.mark.anyio
async def test_seed_is_created_once(seed_store: SeedStore):
    seed, created = await seed_store.get_or_create()
    assert created
    assert len(seed) == 32

    again, created = await seed_store.get_or_create()
    assert not created
    assert again == seed
