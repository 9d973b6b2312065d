from .lnurl import (
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
    lnurl_response_adapter,
)
from .misc import AuthSeed, DbVersion
from .sweep import SweepAllCoinsTransactions, SweepTransaction

__all__ = [
    "AuthSeed",
    "DbVersion",
    "LnurlAuth",
    "LnurlChannel",
    "LnurlPay",
    "LnurlPayRequest",
    "LnurlResponse",
    "LnurlWithdraw",
    "PayInfo",
    "PendingPayMetadata",
    "PendingWithdraw",
    "SuccessAction",
    "SweepAllCoinsTransactions",
    "SweepTransaction",
    "lnurl_response_adapter",
]
