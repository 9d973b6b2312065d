from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class LnurlAuth(BaseModel):
    tag: Literal["login"] = "login"
    callback: str
    k1: str
    host: str
    action: Optional[str] = None
    jwt: bool = False


class LnurlWithdraw(BaseModel):
    tag: Literal["withdrawRequest"] = "withdrawRequest"
    callback: str
    k1: str
    min_amount: int
    max_amount: int
    default_description: str = ""


class LnurlChannel(BaseModel):
    tag: Literal["channelRequest"] = "channelRequest"
    k1: str
    callback: str
    uri: str


class LnurlPay(BaseModel):
    tag: Literal["payRequest"] = "payRequest"
    host: str
    callback: str
    min_amount: int
    max_amount: int
    metadata: list[list[str]] = []
    comment_allowed: int = 0
    description: str = ""


LnurlResponse = Annotated[
    Union[LnurlAuth, LnurlWithdraw, LnurlChannel, LnurlPay],
    Field(discriminator="tag"),
]

lnurl_response_adapter: TypeAdapter[LnurlResponse] = TypeAdapter(LnurlResponse)


class LnurlPayRequest(BaseModel):
    callback: str
    # millisatoshis
    amount: int = Field(gt=0)
    comment: Optional[str] = None
    host: str


class PendingWithdraw(BaseModel):
    # callback url with `k1` already in its query
    callback: str


class PendingPayMetadata(BaseModel):
    encoded: str
    entries: list[list[str]] = []
    # content of the `text/plain` entry
    description: str = ""


class SuccessAction(BaseModel):
    tag: str
    description: Optional[str] = None
    url: Optional[str] = None
    message: Optional[str] = None
    ciphertext: Optional[str] = None
    iv: Optional[str] = None


class PayInfo(BaseModel):
    payment_hash: str
    invoice: str
    host: str
    comment: Optional[str] = None
    metadata: str
    invoice_description: Optional[str] = None
    success_action: Optional[SuccessAction] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
