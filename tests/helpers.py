import json
import os
from hashlib import sha256
from time import time
from typing import Optional

from bolt11 import Bolt11, MilliSatoshi, TagChar, Tags, encode
from embit import ec, script
from embit.networks import NETWORKS

from lnaccount.lnurl import encode as lnurl_encode
from lnaccount.sweep import InputScript, SigHashes, SignDescriptor
from lnaccount.wallets import (
    InputScriptResponse,
    PublishResponse,
    UnspentOutput,
    WalletRpc,
)

INVOICE_PRIVKEY = sha256(b"lnaccount invoice signer").hexdigest()

METADATA = json.dumps([["text/plain", "hi"]])

DUMMY_SIG = bytes.fromhex(
    "3044" + "0220" + "11" * 32 + "0220" + "22" * 32
)
DUMMY_PUBKEY = bytes.fromhex("02" + "33" * 32)


def create_invoice(
    amount_msat: Optional[int],
    description_hash: Optional[str] = None,
    currency: str = "bc",
    preimage: Optional[bytes] = None,
) -> tuple[str, bytes]:
    """A signed bolt11 invoice and the preimage of its payment hash."""
    preimage = preimage or os.urandom(32)
    tags = Tags()
    if description_hash:
        tags.add(TagChar.description_hash, description_hash)
    else:
        tags.add(TagChar.description, "no hash")
    tags.add(TagChar.payment_secret, os.urandom(32).hex())
    tags.add(TagChar.payment_hash, sha256(preimage).hexdigest())
    invoice = Bolt11(
        currency=currency,
        amount_msat=MilliSatoshi(amount_msat) if amount_msat else None,
        date=int(time()),
        tags=tags,
    )
    return encode(invoice, INVOICE_PRIVKEY), preimage


def lnurl_for(url: str) -> str:
    return lnurl_encode(url)


def private_key(seed: bytes = b"\x01" * 32) -> ec.PrivateKey:
    return ec.PrivateKey(sha256(seed).digest())


def p2wkh_address(network: str = "main", seed: bytes = b"\x01" * 32) -> str:
    pubkey = private_key(seed).get_public_key()
    return script.p2wpkh(pubkey).address(NETWORKS[network])


def unspent(
    amount_sat: int,
    index: int = 0,
    address_type: str = "WITNESS_PUBKEY_HASH",
) -> UnspentOutput:
    pubkey = private_key(index.to_bytes(32, "big")).get_public_key()
    if address_type == "NESTED_PUBKEY_HASH":
        pk_script = script.p2sh(script.p2wpkh(pubkey)).data
    else:
        pk_script = script.p2wpkh(pubkey).data
    return UnspentOutput(
        address_type=address_type,
        amount_sat=amount_sat,
        pk_script=pk_script.hex(),
        txid=sha256(index.to_bytes(4, "big")).hexdigest(),
        output_index=index,
        confirmations=6,
    )


class FakeWalletRpc(WalletRpc):
    """In memory node wallet recording every call."""

    def __init__(
        self,
        utxos: Optional[list[UnspentOutput]] = None,
        fee_rates: Optional[dict[int, int]] = None,
        block_height: int = 800_000,
        publish_error: Optional[str] = None,
    ):
        self.utxos = utxos or []
        self.fee_rates = fee_rates or {}
        self.block_height = block_height
        self.publish_error = publish_error
        self.list_unspent_calls: list[tuple[int, int]] = []
        self.sign_requests: list[tuple[bytes, list[SignDescriptor], SigHashes]] = []
        self.published: list[bytes] = []

    async def get_block_height(self) -> int:
        return self.block_height

    async def estimate_fee(self, conf_target: int) -> int:
        return self.fee_rates.get(conf_target, 0)

    async def list_unspent(
        self, min_confs: int, max_confs: int
    ) -> list[UnspentOutput]:
        self.list_unspent_calls.append((min_confs, max_confs))
        return list(self.utxos)

    async def sign_output_raw(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> list[bytes]:
        self.sign_requests.append((raw_tx, sign_descs, sig_hashes))
        return [DUMMY_SIG]

    async def compute_input_script(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> InputScriptResponse:
        self.sign_requests.append((raw_tx, sign_descs, sig_hashes))
        desc = sign_descs[0]
        sig_script = b""
        if desc.output.pk_script.startswith(b"\xa9"):
            # p2sh wrapped p2wkh
            sig_script = bytes([22]) + b"\x00\x14" + b"\x44" * 20
        return InputScriptResponse(
            [InputScript([DUMMY_SIG + b"\x01", DUMMY_PUBKEY], sig_script)]
        )

    async def publish_transaction(self, raw_tx: bytes) -> PublishResponse:
        self.published.append(raw_tx)
        return PublishResponse(self.publish_error)
