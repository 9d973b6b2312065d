from .core.services import (
    AuthFlow,
    LinkKeyDeriver,
    LnurlClient,
    PayFlow,
    SweepPlanner,
    WithdrawFlow,
)
from .exceptions import AccountError, ProtocolError, TransportError, ValidationError

__all__ = [
    "AccountError",
    "AuthFlow",
    "LinkKeyDeriver",
    "LnurlClient",
    "PayFlow",
    "ProtocolError",
    "SweepPlanner",
    "TransportError",
    "ValidationError",
    "WithdrawFlow",
]
