from typing import Optional

from embit import ec, script
from embit.base import EmbitError
from embit.networks import NETWORKS
from loguru import logger

from lnaccount.core.models import SweepAllCoinsTransactions, SweepTransaction
from lnaccount.exceptions import (
    BroadcastRejected,
    FeeEstimationUnavailable,
    InvalidAddress,
    PolicyRejection,
    PubkeyDestinationRejected,
)
from lnaccount.settings import settings
from lnaccount.sweep import craft_sweep_all_tx
from lnaccount.wallets import RemoteSigner, RemoteUtxoSource, WalletRpc


def is_pubkey(address: str) -> bool:
    try:
        ec.PublicKey.parse(bytes.fromhex(address))
    except (ValueError, IndexError, EmbitError):
        return False
    return True


def destination_script(address: str, network: str) -> bytes:
    """Output script paying to `address`, which must belong to `network`."""
    # a bare pubkey is most likely a mistake, never send coins to it
    if is_pubkey(address):
        raise PubkeyDestinationRejected("cannot send coins to pubkeys")
    # embit raises a mix of errors for malformed addresses
    try:
        sc = script.address_to_scriptpubkey(address)
        expected = sc.address(NETWORKS[network])
    except (ValueError, TypeError, AttributeError, EmbitError) as exc:
        raise InvalidAddress(f"invalid address {address}: {exc!s}") from exc
    if address not in (expected, expected.upper()):
        raise InvalidAddress(
            f"address: {address} is not valid for this network: {network}"
        )
    return sc.data


class SweepPlanner:
    """Crafts transactions sending the whole on-chain balance to one address."""

    def __init__(
        self,
        rpc: WalletRpc,
        network: Optional[str] = None,
        conf_targets: Optional[list[int]] = None,
        dust_limit: Optional[int] = None,
    ):
        self.rpc = rpc
        self.signer = RemoteSigner(rpc)
        self.network = network or settings.network
        self.conf_targets = conf_targets or settings.sweep_conf_targets
        self.dust_limit = (
            settings.sweep_dust_limit_sat if dust_limit is None else dust_limit
        )

    async def fee_rate(self, conf_target: int) -> int:
        sat_per_kw = await self.rpc.estimate_fee(conf_target)
        if not sat_per_kw or sat_per_kw <= 0:
            raise FeeEstimationUnavailable(
                f"no fee estimate for a confirmation target of {conf_target}"
            )
        return sat_per_kw

    async def plan(self, address: str) -> SweepAllCoinsTransactions:
        dest_script = destination_script(address, self.network)
        block_height = await self.rpc.get_block_height()

        result = SweepAllCoinsTransactions(amount=0)
        for conf_target in self.conf_targets:
            fee_rate = await self.fee_rate(conf_target)
            utxo_source = RemoteUtxoSource(self.rpc)
            try:
                tx = await craft_sweep_all_tx(
                    fee_rate,
                    self.dust_limit,
                    block_height,
                    dest_script,
                    utxo_source,
                    self.signer,
                )
            except PolicyRejection as exc:
                logger.warning(
                    f"skipping sweep for confirmation target {conf_target}: "
                    f"{exc.message}"
                )
                continue
            finally:
                result.amount = utxo_source.total_amount

            amount_out = sum(out.value for out in tx.vout)
            sweep_tx = SweepTransaction(
                raw_tx=tx.serialize(),
                txid=tx.txid().hex(),
                fee=utxo_source.total_amount - amount_out,
            )
            logger.info(
                f"sweep for confirmation target {conf_target}: "
                f"{sweep_tx.txid}, fee {sweep_tx.fee} sat"
            )
            result.transactions[conf_target] = sweep_tx
        return result

    async def publish_transaction(self, raw_tx: bytes) -> None:
        response = await self.rpc.publish_transaction(raw_tx)
        if response.publish_error:
            logger.error(f"publishing transaction failed: {response.publish_error}")
            raise BroadcastRejected(response.publish_error)
        logger.info("transaction published")
