from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple

from lnaccount.sweep import InputScript, SigHashes, SignDescriptor


class UnspentOutput(NamedTuple):
    address_type: str
    amount_sat: int
    # hex encoded output script
    pk_script: str
    # display byte order, hex
    txid: str
    output_index: int
    confirmations: int


class InputScriptResponse(NamedTuple):
    input_scripts: list[InputScript]
    sig_hashes: SigHashes | None = None


class PublishResponse(NamedTuple):
    publish_error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.publish_error


class WalletRpc(ABC):
    """
    The on-chain wallet of the node. Every method raises `TransportError`
    when the node can not be reached or answers with an error.
    """

    async def cleanup(self):
        pass

    @abstractmethod
    async def get_block_height(self) -> int:
        pass

    @abstractmethod
    async def estimate_fee(self, conf_target: int) -> int:
        """Fee rate in sat/kw to confirm within `conf_target` blocks."""
        pass

    @abstractmethod
    async def list_unspent(
        self, min_confs: int, max_confs: int
    ) -> list[UnspentOutput]:
        pass

    @abstractmethod
    async def sign_output_raw(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> list[bytes]:
        """DER encoded signatures, one per sign descriptor."""
        pass

    @abstractmethod
    async def compute_input_script(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> InputScriptResponse:
        pass

    @abstractmethod
    async def publish_transaction(self, raw_tx: bytes) -> PublishResponse:
        pass
