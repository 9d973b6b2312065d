from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from embit import ec
from embit.transaction import Transaction

SIGHASH_ALL = 0x01


class AddressType(Enum):
    WITNESS_PUBKEY_HASH = "p2wkh"
    NESTED_WITNESS_PUBKEY_HASH = "np2wkh"


class Utxo(NamedTuple):
    address_type: AddressType
    # satoshis
    value: int
    confirmations: int
    pk_script: bytes
    # txid in display byte order, hex
    txid: str
    output_index: int


class TxOut(NamedTuple):
    value: int
    pk_script: bytes


@dataclass
class SigHashes:
    """BIP143 midstate shared by all inputs of a transaction."""

    hash_prev_outs: bytes
    hash_sequence: bytes
    hash_outputs: bytes


@dataclass
class SignDescriptor:
    output: TxOut
    hash_type: int
    input_index: int
    sig_hashes: SigHashes
    witness_script: bytes = b""


class InputScript(NamedTuple):
    witness: list[bytes]
    sig_script: bytes


class UtxoSource(ABC):
    """Lists the spendable coins of the wallet."""

    total_amount: int = 0

    @abstractmethod
    async def list_unspent_witness(
        self, min_confs: int, max_confs: int
    ) -> list[Utxo]:
        pass


class Signer(ABC):
    @abstractmethod
    async def sign_output_raw(
        self, tx: Transaction, sign_desc: SignDescriptor
    ) -> ec.Signature:
        pass

    @abstractmethod
    async def compute_input_script(
        self, tx: Transaction, sign_desc: SignDescriptor
    ) -> InputScript:
        pass
