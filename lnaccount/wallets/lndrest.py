import base64
import json
from typing import Any, Optional

import httpx
from loguru import logger

from lnaccount.exceptions import TransportError
from lnaccount.helpers import normalize_endpoint
from lnaccount.settings import settings
from lnaccount.sweep import InputScript, SigHashes, SignDescriptor

from .base import InputScriptResponse, PublishResponse, UnspentOutput, WalletRpc
from .macaroon import load_macaroon


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(data: Optional[str]) -> bytes:
    return base64.b64decode(data) if data else b""


def _sign_req(
    raw_tx: bytes, sign_descs: list[SignDescriptor], sig_hashes: SigHashes
) -> dict:
    return {
        "raw_tx_bytes": _b64(raw_tx),
        "sign_descs": [
            {
                "output": {
                    "value": desc.output.value,
                    "pk_script": _b64(desc.output.pk_script),
                },
                "sighash": desc.hash_type,
                "witness_script": _b64(desc.witness_script),
                "input_index": desc.input_index,
            }
            for desc in sign_descs
        ],
        "sig_hashes": {
            "hash_prev_outs": _b64(sig_hashes.hash_prev_outs),
            "hash_sequence": _b64(sig_hashes.hash_sequence),
            "hash_outputs": _b64(sig_hashes.hash_outputs),
        },
    }


def _outpoint_txid(outpoint: dict) -> str:
    if outpoint.get("txid_str"):
        return outpoint["txid_str"]
    # txid_bytes are in internal byte order
    return _unb64(outpoint.get("txid_bytes"))[::-1].hex()


class LndRestWallet(WalletRpc):
    """https://api.lightning.community/rest/index.html#lnd-rest-api-reference"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        macaroon: Optional[str] = None,
        cert: Optional[str] = None,
    ):
        endpoint = endpoint or settings.lnd_rest_endpoint
        if not endpoint:
            raise ValueError(
                "cannot initialize LndRestWallet: missing lnd_rest_endpoint"
            )

        cert = cert or settings.lnd_rest_cert
        if not cert:
            logger.warning(
                "No certificate for LndRestWallet provided! "
                "This only works if you have a publicly issued certificate."
            )

        self.endpoint = normalize_endpoint(endpoint)

        try:
            macaroon = load_macaroon(macaroon or settings.lnd_rest_macaroon)
        except ValueError as exc:
            raise ValueError(
                f"cannot load macaroon for LndRestWallet: {exc!s}"
            ) from exc

        headers = {
            "Grpc-Metadata-macaroon": macaroon,
            "User-Agent": settings.user_agent,
        }
        self.client = httpx.AsyncClient(
            base_url=self.endpoint,
            headers=headers,
            # if no cert provided it should be public so we verify it
            verify=cert or True,
            timeout=settings.lnd_rest_timeout,
        )

    async def cleanup(self):
        try:
            await self.client.aclose()
        except RuntimeError as e:
            logger.warning(f"Error closing wallet connection: {e}")

    async def _request(
        self, method: str, path: str, json_data: Optional[dict] = None, **kwargs
    ) -> Any:
        try:
            r = await self.client.request(method, path, json=json_data, **kwargs)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{method} {path} failed: {exc.response.status_code} "
                f"'{exc.response.text}'"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Unable to connect to {self.endpoint}: {exc!s}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise TransportError(f"{method} {path}: invalid json response") from exc

    async def get_block_height(self) -> int:
        data = await self._request("GET", "/v1/getinfo")
        if "block_height" not in data:
            raise TransportError("GET /v1/getinfo: missing block_height")
        return int(data["block_height"])

    async def estimate_fee(self, conf_target: int) -> int:
        data = await self._request("GET", f"/v2/wallet/estimatefee/{conf_target}")
        return int(data.get("sat_per_kw") or 0)

    async def list_unspent(
        self, min_confs: int, max_confs: int
    ) -> list[UnspentOutput]:
        data = await self._request(
            "GET",
            "/v1/utxos",
            params={"min_confs": min_confs, "max_confs": max_confs},
        )
        return [
            UnspentOutput(
                address_type=utxo.get("address_type", ""),
                amount_sat=int(utxo.get("amount_sat", 0)),
                pk_script=utxo.get("pk_script", ""),
                txid=_outpoint_txid(utxo.get("outpoint", {})),
                output_index=int(utxo.get("outpoint", {}).get("output_index", 0)),
                confirmations=int(utxo.get("confirmations", 0)),
            )
            for utxo in data.get("utxos", [])
        ]

    async def sign_output_raw(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> list[bytes]:
        data = await self._request(
            "POST", "/v2/signer/signraw", _sign_req(raw_tx, sign_descs, sig_hashes)
        )
        return [_unb64(sig) for sig in data.get("raw_sigs", [])]

    async def compute_input_script(
        self,
        raw_tx: bytes,
        sign_descs: list[SignDescriptor],
        sig_hashes: SigHashes,
    ) -> InputScriptResponse:
        data = await self._request(
            "POST",
            "/v2/signer/inputscript",
            _sign_req(raw_tx, sign_descs, sig_hashes),
        )
        input_scripts = [
            InputScript(
                witness=[_unb64(item) for item in script.get("witness", [])],
                sig_script=_unb64(script.get("sig_script")),
            )
            for script in data.get("input_scripts", [])
        ]
        hashes = data.get("sig_hashes")
        returned_hashes = (
            SigHashes(
                hash_prev_outs=_unb64(hashes.get("hash_prev_outs")),
                hash_sequence=_unb64(hashes.get("hash_sequence")),
                hash_outputs=_unb64(hashes.get("hash_outputs")),
            )
            if hashes
            else None
        )
        return InputScriptResponse(input_scripts, returned_hashes)

    async def publish_transaction(self, raw_tx: bytes) -> PublishResponse:
        data = await self._request("POST", "/v2/wallet/tx", {"tx_hex": _b64(raw_tx)})
        return PublishResponse(data.get("publish_error") or None)
