from hashlib import sha256

from embit import script
from embit.transaction import Transaction, TransactionInput, TransactionOutput
from loguru import logger

from lnaccount.exceptions import PolicyRejection, SweepError

from .base import (
    SIGHASH_ALL,
    AddressType,
    SigHashes,
    SignDescriptor,
    Signer,
    TxOut,
    Utxo,
    UtxoSource,
)
from .weight import TxWeightEstimator

MAX_CONFS = 2**31 - 1
# 1 sat/vbyte
FEE_PER_KW_FLOOR = 253
SWEEP_SEQUENCE = 0xFFFFFFFE
TX_VERSION = 2


def double_sha256(data: bytes) -> bytes:
    return sha256(sha256(data).digest()).digest()


def sig_hashes(tx: Transaction) -> SigHashes:
    prevouts = b"".join(
        inp.txid[::-1] + inp.vout.to_bytes(4, "little") for inp in tx.vin
    )
    sequences = b"".join(inp.sequence.to_bytes(4, "little") for inp in tx.vin)
    outputs = b"".join(out.serialize() for out in tx.vout)
    return SigHashes(
        hash_prev_outs=double_sha256(prevouts),
        hash_sequence=double_sha256(sequences),
        hash_outputs=double_sha256(outputs),
    )


def estimate_weight(utxos: list[Utxo], destination_script: bytes) -> int:
    estimator = TxWeightEstimator()
    for utxo in utxos:
        if utxo.address_type == AddressType.WITNESS_PUBKEY_HASH:
            estimator.add_p2wkh_input()
        elif utxo.address_type == AddressType.NESTED_WITNESS_PUBKEY_HASH:
            estimator.add_nested_p2wkh_input()
        else:
            raise SweepError(f"cannot sweep coins of type {utxo.address_type}")
    estimator.add_output(destination_script)
    return estimator.weight()


def _bip69_key(utxo: Utxo):
    return (bytes.fromhex(utxo.txid), utxo.output_index)


async def craft_sweep_all_tx(
    fee_rate_per_kw: int,
    dust_limit: int,
    block_height: int,
    destination_script: bytes,
    utxo_source: UtxoSource,
    signer: Signer,
) -> Transaction:
    """
    Builds and signs a transaction spending every confirmed coin listed by
    `utxo_source` to `destination_script`, paying `fee_rate_per_kw`.
    Raises `PolicyRejection` when the transaction would not be relayed,
    `SweepError` when there is nothing to sweep.
    """
    utxos = await utxo_source.list_unspent_witness(1, MAX_CONFS)
    if not utxos:
        raise SweepError("no confirmed coins to sweep")

    fee_rate_per_kw = max(fee_rate_per_kw, FEE_PER_KW_FLOOR)
    weight = estimate_weight(utxos, destination_script)
    fee = fee_rate_per_kw * weight // 1000
    total_in = sum(utxo.value for utxo in utxos)
    amount_out = total_in - fee

    logger.debug(
        f"sweeping {len(utxos)} coins, {total_in} sat in, weight {weight}, "
        f"fee {fee} sat at {fee_rate_per_kw} sat/kw"
    )
    if amount_out <= 0:
        raise PolicyRejection(f"fee of {fee} sat exceeds the swept {total_in} sat")
    if amount_out < dust_limit:
        raise PolicyRejection(
            f"output of {amount_out} sat is below the dust limit of {dust_limit} sat"
        )

    utxos = sorted(utxos, key=_bip69_key)
    vin = [
        TransactionInput(
            bytes.fromhex(utxo.txid), utxo.output_index, sequence=SWEEP_SEQUENCE
        )
        for utxo in utxos
    ]
    vout = [TransactionOutput(amount_out, script.Script(destination_script))]
    tx = Transaction(version=TX_VERSION, vin=vin, vout=vout, locktime=block_height)

    hashes = sig_hashes(tx)
    input_scripts = []
    for i, utxo in enumerate(utxos):
        sign_desc = SignDescriptor(
            output=TxOut(utxo.value, utxo.pk_script),
            hash_type=SIGHASH_ALL,
            input_index=i,
            sig_hashes=hashes,
        )
        input_scripts.append(await signer.compute_input_script(tx, sign_desc))

    for inp, input_script in zip(tx.vin, input_scripts):
        inp.witness = script.Witness(items=list(input_script.witness))
        inp.script_sig = script.Script(input_script.sig_script)

    return tx
