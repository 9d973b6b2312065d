from .linkkey import LinkKey, LinkKeyDeriver, derive_link_key, link_key_path
from .lnurl import AuthFlow, LnurlClient, PayFlow, WithdrawFlow
from .sweep import SweepPlanner, destination_script, is_pubkey

__all__ = [
    "AuthFlow",
    "LinkKey",
    "LinkKeyDeriver",
    "LnurlClient",
    "PayFlow",
    "SweepPlanner",
    "WithdrawFlow",
    "derive_link_key",
    "destination_script",
    "is_pubkey",
    "link_key_path",
]
