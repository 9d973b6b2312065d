from .base import (
    SIGHASH_ALL,
    AddressType,
    InputScript,
    SigHashes,
    SignDescriptor,
    Signer,
    TxOut,
    Utxo,
    UtxoSource,
)
from .txbuilder import MAX_CONFS, craft_sweep_all_tx, sig_hashes
from .weight import TxWeightEstimator

__all__ = [
    "MAX_CONFS",
    "SIGHASH_ALL",
    "AddressType",
    "InputScript",
    "SigHashes",
    "SignDescriptor",
    "Signer",
    "TxOut",
    "TxWeightEstimator",
    "Utxo",
    "UtxoSource",
    "craft_sweep_all_tx",
    "sig_hashes",
]
