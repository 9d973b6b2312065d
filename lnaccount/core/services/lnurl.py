import json
from hashlib import sha256
from typing import Any, Optional, Union
from urllib.parse import urlparse

import httpx
from bolt11 import Bolt11Exception
from bolt11 import decode as bolt11_decode
from lnurl.exceptions import LnurlException
from lnurl.models import (
    LnurlChannelResponse,
    LnurlPayResponse,
    LnurlWithdrawResponse,
)
from lnurl.models import LnurlResponse as LnurlResponseParser
from lnurl.types import LnurlPayMetadata
from loguru import logger

from lnaccount.core.crud import PayInfoStore
from lnaccount.core.models import (
    LnurlAuth,
    LnurlChannel,
    LnurlPay,
    LnurlPayRequest,
    LnurlResponse,
    LnurlWithdraw,
    PayInfo,
    PendingPayMetadata,
    PendingWithdraw,
    SuccessAction,
)
from lnaccount.exceptions import (
    AmountMismatch,
    HashMismatch,
    InvalidInvoice,
    NotDecryptable,
    PayInfoConflict,
    PayInfoNotFound,
    ProtocolError,
    TransportError,
    UnsupportedResponse,
    UnsupportedSuccessAction,
    ValidationError,
)
from lnaccount.helpers import (
    check_callback_url,
    msat_to_sat_ceil,
    msat_to_sat_floor,
    url_with_params,
)
from lnaccount.lnurl import extract, url_query
from lnaccount.settings import settings
from lnaccount.utils.crypto import AESCipher, random_nonce, verify_preimage

from .linkkey import LinkKeyDeriver

SUPPORTED_SUCCESS_ACTIONS = ("message", "url", "aes")


def _checked_callback(callback: str) -> str:
    try:
        check_callback_url(callback)
    except ValueError as exc:
        raise ValidationError(f"Invalid callback URL: {exc!s}") from exc
    return callback


def _k1_bytes(k1: str) -> bytes:
    try:
        k1_bytes = bytes.fromhex(k1)
    except ValueError as exc:
        raise ValidationError("k1 is not a hex string.") from exc
    if len(k1_bytes) != 32:
        raise ValidationError("k1 must be 32 bytes.")
    return k1_bytes


def _classified(data: dict, expected: type) -> Any:
    """Validates `data` with the lnurl response model of its tag."""
    tag = data.get("tag")
    try:
        # copy, parsing pops keys
        res = LnurlResponseParser.from_dict(dict(data))
    except (LnurlException, ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid {tag}: {exc!s}") from exc
    if not isinstance(res, expected):
        raise ValidationError(f"Invalid {tag} response.")
    return res


def _same_payment(stored: PayInfo, info: PayInfo) -> bool:
    # a decrypted aes message is only added after the payment
    exclude = {"created_at": True, "success_action": {"message"}}
    return stored.model_dump(exclude=exclude) == info.model_dump(exclude=exclude)


class LnurlClient:
    """
    Resolves LNURLs into typed responses.
    Holds the pending withdraw and pay slots of the current session; every
    `resolve` clears both before filling the one matching the new result.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent},
            timeout=timeout or settings.lnurl_timeout,
        )
        self.pending_withdraw: Optional[PendingWithdraw] = None
        self.pending_pay_metadata: Optional[PendingPayMetadata] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def get_json(
        self, url: str, allowed_status: Optional[tuple[int, ...]] = None
    ) -> dict:
        try:
            r = await self.client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc!s}") from exc

        if allowed_status and r.status_code not in allowed_status:
            raise TransportError(
                f"Error in http request: {r.status_code} {r.reason_phrase}"
            )

        try:
            data = json.loads(r.text)
        except json.JSONDecodeError as exc:
            raise ProtocolError("invalid json response") from exc
        if not isinstance(data, dict):
            raise ProtocolError("invalid json response")

        if str(data.get("status", "")).upper() == "ERROR":
            raise ProtocolError(data.get("reason"))
        if r.is_error:
            raise TransportError(
                f"Error in http request: {r.status_code} {r.reason_phrase}"
            )
        return data

    async def resolve(self, text: str) -> LnurlResponse:
        self.pending_withdraw = None
        self.pending_pay_metadata = None

        url = extract(text)
        logger.info(f"resolving lnurl {url}")
        query = url_query(url)
        tag = query.get("tag")

        if tag == "login":
            return self._auth_from_query(url, query)
        if tag == "withdrawRequest" and "callback" in query:
            # fast withdraw, all parameters are in the url
            return self._withdraw_from(query)

        data = await self.get_json(url)
        tag = data.get("tag")
        if tag == "withdrawRequest":
            return self._withdraw_from(data)
        if tag == "channelRequest":
            return self._channel_from(data)
        if tag == "payRequest":
            return self._pay_from(url, data)
        raise UnsupportedResponse(f"Unsupported LNURL tag: {tag}")

    def _auth_from_query(self, url: str, query: dict[str, str]) -> LnurlAuth:
        k1 = query.get("k1")
        if not k1:
            raise ValidationError("LNURL-auth is missing k1.")
        _k1_bytes(k1)
        u = urlparse(_checked_callback(url))
        return LnurlAuth(
            callback=url,
            k1=k1,
            host=u.netloc,
            action=query.get("action"),
            jwt=query.get("jwt", "").lower() in ("true", "1"),
        )

    def _withdraw_from(self, data: dict) -> LnurlWithdraw:
        _classified(data, LnurlWithdrawResponse)
        # raw values, the parsed model may normalize urls
        callback = _checked_callback(str(data["callback"]))
        k1 = str(data["k1"])
        withdraw = LnurlWithdraw(
            callback=callback,
            k1=k1,
            min_amount=msat_to_sat_ceil(int(data["minWithdrawable"])),
            max_amount=msat_to_sat_floor(int(data["maxWithdrawable"])),
            default_description=str(data.get("defaultDescription") or ""),
        )
        self.pending_withdraw = PendingWithdraw(
            callback=url_with_params(callback, k1=k1)
        )
        logger.debug(f"pending withdraw: {self.pending_withdraw.callback}")
        return withdraw

    def _channel_from(self, data: dict) -> LnurlChannel:
        _classified(data, LnurlChannelResponse)
        return LnurlChannel(
            k1=str(data["k1"]),
            callback=_checked_callback(str(data["callback"])),
            uri=str(data["uri"]),
        )

    def _pay_from(self, url: str, data: dict) -> LnurlPay:
        _classified(data, LnurlPayResponse)
        callback = _checked_callback(str(data["callback"]))
        # the description hash commits to this exact string
        encoded = str(data["metadata"])
        try:
            metadata = LnurlPayMetadata(encoded)
        except (LnurlException, ValueError) as exc:
            raise ValidationError(f"Invalid payRequest: {exc!s}") from exc
        entries = [[str(mime), str(content)] for mime, content in metadata.list()]

        pending = PendingPayMetadata(
            encoded=encoded, entries=entries, description=metadata.text
        )
        self.pending_pay_metadata = pending
        return LnurlPay(
            host=urlparse(url).netloc,
            callback=callback,
            min_amount=msat_to_sat_floor(int(data["minSendable"])),
            max_amount=msat_to_sat_floor(int(data["maxSendable"])),
            metadata=entries,
            comment_allowed=int(data.get("commentAllowed") or 0),
            description=pending.description,
        )


class AuthFlow:
    def __init__(self, client: LnurlClient, deriver: LinkKeyDeriver):
        self.client = client
        self.deriver = deriver

    async def finish(self, auth: LnurlAuth) -> Optional[str]:
        """
        Logs in to `auth.host` with the host specific link key (LUD-04/05).
        Returns the session token, if the service sent one.
        """
        k1 = _k1_bytes(auth.k1)
        link_key = await self.deriver.derive(auth.host)
        sig = link_key.private_key.sign(k1)
        params = {
            "key": link_key.public_key.sec().hex(),
            "sig": sig.serialize().hex(),
        }
        if auth.jwt:
            params["jwt"] = "true"
        data = await self.client.get_json(url_with_params(auth.callback, **params))
        logger.info(f"lnurl-auth to {auth.host} succeeded")
        return data.get("token")


class WithdrawFlow:
    def __init__(self, client: LnurlClient):
        self.client = client

    async def finish(self, invoice: str) -> None:
        pending = self.client.pending_withdraw
        if not pending:
            raise ValidationError("No pending LNURL-withdraw.")
        await self.client.get_json(url_with_params(pending.callback, pr=invoice))
        logger.info("lnurl-withdraw request accepted")


class PayFlow:
    def __init__(
        self,
        client: LnurlClient,
        store: PayInfoStore,
        currency: Optional[str] = None,
    ):
        self.client = client
        self.store = store
        self.currency = currency or settings.bolt11_currency

    async def finish(self, request: LnurlPayRequest) -> PayInfo:
        """
        Requests an invoice for `request.amount` msat and verifies it against
        the metadata captured when the payRequest was resolved.
        The invoice itself is paid by the caller.
        """
        pending = self.client.pending_pay_metadata
        if not pending:
            raise ValidationError("No pending LNURL-pay metadata.")

        params: dict[str, Union[str, int]] = {
            "amount": request.amount,
            "nonce": random_nonce(settings.lnurl_pay_nonce_bytes),
        }
        if request.comment:
            params["comment"] = request.comment
        url = url_with_params(_checked_callback(request.callback), **params)
        logger.debug(f"lnurl-pay callback: {url}")
        data = await self.client.get_json(url, allowed_status=(200, 320))

        pr = data.get("pr")
        if not pr or not isinstance(pr, str):
            raise InvalidInvoice("Response does not contain an invoice.")
        invoice = self._decode_invoice(pr)

        description_hash = invoice.description_hash
        if not description_hash:
            raise InvalidInvoice("Description hash not found in invoice.")
        if isinstance(description_hash, bytes):
            description_hash = description_hash.hex()
        if sha256(pending.encoded.encode()).hexdigest() != description_hash.lower():
            logger.error("lnurl-pay: invoice description hash does not match metadata")
            raise HashMismatch("Invoice description hash does not match metadata.")

        if invoice.amount_msat is None or int(invoice.amount_msat) != request.amount:
            logger.error(
                f"lnurl-pay: invoice amount {invoice.amount_msat} msat does not "
                f"match requested {request.amount} msat"
            )
            raise AmountMismatch(
                "Invoice amount does not match the amount set by user."
            )

        if data.get("routes"):
            logger.warning(
                f"lnurl-pay: {request.host} sent routes, they are unverified "
                "and ignored"
            )

        success_action = self._success_action(data.get("successAction"))

        payment_hash = invoice.payment_hash
        if isinstance(payment_hash, bytes):
            payment_hash = payment_hash.hex()
        info = PayInfo(
            payment_hash=payment_hash,
            invoice=pr,
            host=request.host,
            comment=request.comment,
            metadata=pending.encoded,
            invoice_description=pending.description,
            success_action=success_action,
        )
        async with self.store.db.connect() as conn:
            existing = await self.store.get(payment_hash, conn=conn)
            if existing:
                if not _same_payment(existing, info):
                    raise PayInfoConflict(
                        f"Invoice {payment_hash} is already recorded for "
                        f"another payment to {existing.host}."
                    )
                logger.info(f"lnurl-pay {payment_hash} already recorded")
                return existing
            await self.store.save(info, conn=conn)
        logger.info(f"lnurl-pay to {request.host} verified, hash {payment_hash}")
        return info

    def _decode_invoice(self, pr: str):
        # truncated data surfaces as bitstring's ReadError, an IndexError
        try:
            invoice = bolt11_decode(pr)
        except (Bolt11Exception, ValueError, IndexError, KeyError, TypeError) as exc:
            raise InvalidInvoice(f"Invalid invoice: {exc!s}") from exc
        if invoice.currency != self.currency:
            raise InvalidInvoice(
                f"Invoice is for network '{invoice.currency}', "
                f"expected '{self.currency}'."
            )
        return invoice

    def _success_action(self, action) -> Optional[SuccessAction]:
        if action is None:
            return None
        if not isinstance(action, dict):
            raise UnsupportedSuccessAction("Invalid successAction.")
        tag = action.get("tag")
        if tag not in SUPPORTED_SUCCESS_ACTIONS:
            raise UnsupportedSuccessAction(f"Unknown SuccessAction: {tag}")
        return SuccessAction(
            tag=tag,
            description=action.get("description"),
            url=action.get("url"),
            # an aes message only exists after decryption
            message=None if tag == "aes" else action.get("message"),
            ciphertext=action.get("ciphertext"),
            iv=action.get("iv"),
        )

    async def decrypt_success_action(
        self, payment_hash: str, preimage: Union[bytes, str]
    ) -> str:
        async with self.store.db.connect() as conn:
            info = await self.store.get(payment_hash, conn=conn)
            if not info:
                raise PayInfoNotFound(f"No LNURL-pay info for {payment_hash}.")

            action = info.success_action
            if not action or action.tag != "aes" or not action.ciphertext:
                raise NotDecryptable("LNURL-pay success action is not decryptable.")
            if action.message:
                return action.message

            try:
                key = (
                    preimage
                    if isinstance(preimage, bytes)
                    else bytes.fromhex(preimage)
                )
            except ValueError as exc:
                raise NotDecryptable("Preimage is not a hex string.") from exc
            if not verify_preimage(key, payment_hash):
                raise NotDecryptable("Preimage does not match the payment hash.")

            try:
                message = AESCipher(key).decrypt(action.ciphertext, action.iv or "")
            except ValueError as exc:
                raise NotDecryptable(f"Could not decrypt message: {exc!s}") from exc

            action.message = message
            await self.store.update(info, conn=conn)

        logger.info(f"decrypted success action of {payment_hash}")
        return message
