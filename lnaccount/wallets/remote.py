from embit import ec
from embit.transaction import Transaction
from loguru import logger

from lnaccount.exceptions import TransportError, UnsupportedAddressType
from lnaccount.sweep import (
    AddressType,
    InputScript,
    Signer,
    SignDescriptor,
    Utxo,
    UtxoSource,
)

from .base import WalletRpc

ADDRESS_TYPES = {
    "WITNESS_PUBKEY_HASH": AddressType.WITNESS_PUBKEY_HASH,
    "NESTED_PUBKEY_HASH": AddressType.NESTED_WITNESS_PUBKEY_HASH,
}


class RemoteUtxoSource(UtxoSource):
    """Lists the wallet coins through the node, remembering their total value."""

    def __init__(self, rpc: WalletRpc):
        self.rpc = rpc
        self.total_amount = 0

    async def list_unspent_witness(
        self, min_confs: int, max_confs: int
    ) -> list[Utxo]:
        try:
            unspent = await self.rpc.list_unspent(min_confs, max_confs)
        except TransportError as exc:
            raise TransportError(f"list_unspent: {exc.message}") from exc

        utxos = []
        self.total_amount = 0
        for output in unspent:
            address_type = ADDRESS_TYPES.get(output.address_type)
            if not address_type:
                raise UnsupportedAddressType(
                    f"invalid utxo address type: {output.address_type}"
                )
            utxos.append(
                Utxo(
                    address_type=address_type,
                    value=output.amount_sat,
                    confirmations=output.confirmations,
                    pk_script=bytes.fromhex(output.pk_script),
                    txid=output.txid,
                    output_index=output.output_index,
                )
            )
            self.total_amount += output.amount_sat
        logger.debug(f"listed {len(utxos)} utxos worth {self.total_amount} sat")
        return utxos


class RemoteSigner(Signer):
    """Signs sweep inputs with the keys held by the node."""

    def __init__(self, rpc: WalletRpc):
        self.rpc = rpc

    async def sign_output_raw(
        self, tx: Transaction, sign_desc: SignDescriptor
    ) -> ec.Signature:
        try:
            raw_sigs = await self.rpc.sign_output_raw(
                tx.serialize(), [sign_desc], sign_desc.sig_hashes
            )
        except TransportError as exc:
            raise TransportError(f"sign_output_raw: {exc.message}") from exc
        if not raw_sigs:
            raise TransportError("sign_output_raw: no signature returned")
        return ec.Signature.parse(raw_sigs[0])

    async def compute_input_script(
        self, tx: Transaction, sign_desc: SignDescriptor
    ) -> InputScript:
        try:
            response = await self.rpc.compute_input_script(
                tx.serialize(), [sign_desc], sign_desc.sig_hashes
            )
        except TransportError as exc:
            raise TransportError(f"compute_input_script: {exc.message}") from exc
        if not response.input_scripts:
            raise TransportError("compute_input_script: no input script returned")
        if response.sig_hashes:
            sign_desc.sig_hashes.hash_prev_outs = response.sig_hashes.hash_prev_outs
            sign_desc.sig_hashes.hash_sequence = response.sig_hashes.hash_sequence
            sign_desc.sig_hashes.hash_outputs = response.sig_hashes.hash_outputs
        return response.input_scripts[0]
