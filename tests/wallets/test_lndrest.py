import base64

import pytest
from pytest_httpserver import HTTPServer
from werkzeug.wrappers import Response

from lnaccount.exceptions import TransportError
from lnaccount.settings import Settings
from lnaccount.sweep import SIGHASH_ALL, SigHashes, SignDescriptor, TxOut
from lnaccount.wallets import LndRestWallet, get_wallet_rpc
from lnaccount.wallets.macaroon import load_macaroon
from tests.helpers import DUMMY_SIG

MACAROON = "0201036c6e64"

headers = {
    "Grpc-Metadata-macaroon": MACAROON,
    "User-Agent": "lnaccount/Tests",
}

SIG_HASHES = SigHashes(b"\x01" * 32, b"\x02" * 32, b"\x03" * 32)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _sign_desc() -> SignDescriptor:
    return SignDescriptor(
        output=TxOut(5000, b"\x00\x14" + b"\x05" * 20),
        hash_type=SIGHASH_ALL,
        input_index=0,
        sig_hashes=SIG_HASHES,
    )


@pytest.fixture
async def wallet(httpserver: HTTPServer, settings: Settings):
    wallet = LndRestWallet(
        endpoint=httpserver.url_for("/"), macaroon=MACAROON, cert=""
    )
    yield wallet
    await wallet.cleanup()


def test_missing_endpoint(settings: Settings):
    settings.lnd_rest_endpoint = None
    with pytest.raises(ValueError, match="missing lnd_rest_endpoint"):
        LndRestWallet(macaroon=MACAROON)


def test_invalid_macaroon():
    with pytest.raises(ValueError, match="cannot load macaroon"):
        LndRestWallet(endpoint="http://127.0.0.1:8555", macaroon="not a macaroon!")


def test_get_wallet_rpc_from_settings(settings: Settings):
    settings.lnd_rest_endpoint = "http://127.0.0.1:8555"
    settings.lnd_rest_macaroon = MACAROON
    try:
        rpc = get_wallet_rpc()
        assert isinstance(rpc, LndRestWallet)
        assert rpc.endpoint == "http://127.0.0.1:8555"
    finally:
        settings.lnd_rest_endpoint = None
        settings.lnd_rest_macaroon = None


def test_load_macaroon(tmp_path):
    raw = bytes.fromhex(MACAROON)
    assert load_macaroon(MACAROON) == MACAROON
    assert load_macaroon(_b64(raw)) == MACAROON

    path = tmp_path / "admin.macaroon"
    path.write_bytes(raw)
    assert load_macaroon(str(path)) == MACAROON

    with pytest.raises(ValueError):
        load_macaroon("")


@pytest.mark.anyio
async def test_get_block_height(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(
        uri="/v1/getinfo", headers=headers, method="GET"
    ).respond_with_json({"block_height": 812345, "synced_to_chain": True})

    assert await wallet.get_block_height() == 812345
    httpserver.check_assertions()


@pytest.mark.anyio
async def test_get_block_height_missing(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(uri="/v1/getinfo", method="GET").respond_with_json({})
    with pytest.raises(TransportError, match="missing block_height"):
        await wallet.get_block_height()


@pytest.mark.anyio
async def test_estimate_fee(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(
        uri="/v2/wallet/estimatefee/6", headers=headers, method="GET"
    ).respond_with_json({"sat_per_kw": "2500"})

    assert await wallet.estimate_fee(6) == 2500


@pytest.mark.anyio
async def test_list_unspent(httpserver: HTTPServer, wallet: LndRestWallet):
    txid = bytes(range(32))
    httpserver.expect_request(
        uri="/v1/utxos",
        headers=headers,
        method="GET",
        query_string={"min_confs": "1", "max_confs": "2147483647"},
    ).respond_with_json(
        {
            "utxos": [
                {
                    "address_type": "WITNESS_PUBKEY_HASH",
                    "amount_sat": "15000",
                    "pk_script": "0014" + "05" * 20,
                    "outpoint": {"txid_str": "ab" * 32, "output_index": 1},
                    "confirmations": "12",
                },
                {
                    "address_type": "NESTED_PUBKEY_HASH",
                    "amount_sat": "2000",
                    "pk_script": "a914" + "06" * 20 + "87",
                    "outpoint": {"txid_bytes": _b64(txid)},
                    "confirmations": "3",
                },
            ]
        }
    )

    utxos = await wallet.list_unspent(1, 2**31 - 1)

    assert len(utxos) == 2
    assert utxos[0].address_type == "WITNESS_PUBKEY_HASH"
    assert utxos[0].amount_sat == 15000
    assert utxos[0].txid == "ab" * 32
    assert utxos[0].output_index == 1
    assert utxos[0].confirmations == 12
    # txid_bytes are reversed into display order
    assert utxos[1].txid == txid[::-1].hex()
    assert utxos[1].output_index == 0


@pytest.mark.anyio
async def test_sign_output_raw(httpserver: HTTPServer, wallet: LndRestWallet):
    raw_tx = b"\x02\x00\x00\x00"
    httpserver.expect_request(
        uri="/v2/signer/signraw",
        headers=headers,
        method="POST",
        json={
            "raw_tx_bytes": _b64(raw_tx),
            "sign_descs": [
                {
                    "output": {
                        "value": 5000,
                        "pk_script": _b64(b"\x00\x14" + b"\x05" * 20),
                    },
                    "sighash": SIGHASH_ALL,
                    "witness_script": "",
                    "input_index": 0,
                }
            ],
            "sig_hashes": {
                "hash_prev_outs": _b64(b"\x01" * 32),
                "hash_sequence": _b64(b"\x02" * 32),
                "hash_outputs": _b64(b"\x03" * 32),
            },
        },
    ).respond_with_json({"raw_sigs": [_b64(DUMMY_SIG)]})

    sigs = await wallet.sign_output_raw(raw_tx, [_sign_desc()], SIG_HASHES)

    assert sigs == [DUMMY_SIG]
    httpserver.check_assertions()


@pytest.mark.anyio
async def test_compute_input_script(httpserver: HTTPServer, wallet: LndRestWallet):
    witness = [DUMMY_SIG + b"\x01", b"\x02" * 33]
    httpserver.expect_request(
        uri="/v2/signer/inputscript", headers=headers, method="POST"
    ).respond_with_json(
        {
            "input_scripts": [
                {"witness": [_b64(item) for item in witness], "sig_script": ""}
            ],
            "sig_hashes": {
                "hash_prev_outs": _b64(b"\x0a" * 32),
                "hash_sequence": _b64(b"\x0b" * 32),
                "hash_outputs": _b64(b"\x0c" * 32),
            },
        }
    )

    response = await wallet.compute_input_script(b"\x02", [_sign_desc()], SIG_HASHES)

    assert response.input_scripts[0].witness == witness
    assert response.input_scripts[0].sig_script == b""
    assert response.sig_hashes == SigHashes(b"\x0a" * 32, b"\x0b" * 32, b"\x0c" * 32)


@pytest.mark.anyio
async def test_compute_input_script_without_sig_hashes(
    httpserver: HTTPServer, wallet: LndRestWallet
):
    httpserver.expect_request(
        uri="/v2/signer/inputscript", method="POST"
    ).respond_with_json({"input_scripts": [{"witness": [], "sig_script": "AAE="}]})

    response = await wallet.compute_input_script(b"\x02", [_sign_desc()], SIG_HASHES)

    assert response.input_scripts[0].sig_script == b"\x00\x01"
    assert response.sig_hashes is None


@pytest.mark.anyio
async def test_publish_transaction(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(
        uri="/v2/wallet/tx",
        headers=headers,
        method="POST",
        json={"tx_hex": _b64(b"\x02\x00")},
    ).respond_with_json({"publish_error": ""})

    response = await wallet.publish_transaction(b"\x02\x00")
    assert response.ok
    assert response.publish_error is None


@pytest.mark.anyio
async def test_publish_transaction_error(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(uri="/v2/wallet/tx", method="POST").respond_with_json(
        {"publish_error": "txn-mempool-conflict"}
    )

    response = await wallet.publish_transaction(b"\x02\x00")
    assert not response.ok
    assert response.publish_error == "txn-mempool-conflict"


@pytest.mark.anyio
async def test_http_error(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(uri="/v1/getinfo", method="GET").respond_with_response(
        Response("permission denied", status=500)
    )
    with pytest.raises(TransportError, match="500 'permission denied'"):
        await wallet.get_block_height()


@pytest.mark.anyio
async def test_invalid_json(httpserver: HTTPServer, wallet: LndRestWallet):
    httpserver.expect_request(
        uri="/v2/wallet/estimatefee/2", method="GET"
    ).respond_with_data("not json")
    with pytest.raises(TransportError, match="invalid json"):
        await wallet.estimate_fee(2)


@pytest.mark.anyio
async def test_unreachable_node(settings: Settings):
    wallet = LndRestWallet(endpoint="http://127.0.0.1:1", macaroon=MACAROON)
    try:
        with pytest.raises(TransportError, match="Unable to connect"):
            await wallet.get_block_height()
    finally:
        await wallet.cleanup()
