from typing import Optional


class AccountError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProtocolError(AccountError):
    """The remote service explicitly reported a failure."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "unknown error"
        super().__init__(self.reason)


class TransportError(AccountError):
    pass


class BroadcastRejected(AccountError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"transaction rejected by node: {reason}")


class ValidationError(AccountError):
    pass


class UnsupportedResponse(ValidationError):
    pass


class InvalidInvoice(ValidationError):
    pass


class HashMismatch(ValidationError):
    pass


class AmountMismatch(ValidationError):
    pass


class UnsupportedSuccessAction(ValidationError):
    pass


class NotDecryptable(ValidationError):
    pass


class UnsupportedAddressType(ValidationError):
    pass


class InvalidAddress(ValidationError):
    pass


class PubkeyDestinationRejected(InvalidAddress):
    pass


class NotFound(AccountError):
    pass


class LnurlNotFound(NotFound):
    pass


class PayInfoNotFound(NotFound):
    pass


class PolicyRejection(AccountError):
    """A single sweep transaction violates consensus or relay policy."""


class FeeEstimationUnavailable(AccountError):
    pass


class KeyDerivationExhausted(AccountError):
    pass


class SweepError(AccountError):
    pass


class PayInfoConflict(ValidationError):
    """The invoice is already recorded for a different LNURL-pay."""
