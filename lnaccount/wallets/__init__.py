from __future__ import annotations

import importlib

from lnaccount.settings import settings

from .base import InputScriptResponse, PublishResponse, UnspentOutput, WalletRpc
from .lndrest import LndRestWallet
from .remote import RemoteSigner, RemoteUtxoSource


def get_wallet_rpc(class_name: str | None = None) -> WalletRpc:
    wallet_rpc_class = class_name or settings.wallet_rpc_class
    wallet_rpc_constructor = getattr(wallets_module, wallet_rpc_class, None)
    if not wallet_rpc_constructor:
        raise ValueError(f"Unknown wallet rpc class '{wallet_rpc_class}'.")
    return wallet_rpc_constructor()


wallets_module = importlib.import_module("lnaccount.wallets")


__all__ = [
    "InputScriptResponse",
    "LndRestWallet",
    "PublishResponse",
    "RemoteSigner",
    "RemoteUtxoSource",
    "UnspentOutput",
    "WalletRpc",
    "get_wallet_rpc",
]
