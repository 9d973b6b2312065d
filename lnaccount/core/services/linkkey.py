import hashlib
import hmac
from typing import Awaitable, Callable, NamedTuple, Optional

from embit import ec
from embit.base import EmbitError
from embit.bip32 import HDKey
from loguru import logger

from lnaccount.core.crud import SeedStore
from lnaccount.exceptions import KeyDerivationExhausted
from lnaccount.settings import settings

MAX_INDEX = 0xFFFFFFFF


class LinkKey(NamedTuple):
    private_key: ec.PrivateKey
    public_key: ec.PublicKey


def link_key_path(seed: bytes, host: str) -> list[int]:
    """Four big-endian uint32 indexes from the first 16 bytes of HMAC(seed, host)."""
    digest = hmac.new(seed, host.encode(), hashlib.sha256).digest()
    return [int.from_bytes(digest[i : i + 4], "big") for i in range(0, 16, 4)]


def _derive_child(key: HDKey, index: int, max_attempts: int) -> HDKey:
    for _ in range(max_attempts):
        if index > MAX_INDEX:
            break
        try:
            return key.child(index)
        except (EmbitError, ValueError) as exc:
            logger.debug(f"invalid child key at index {index}: {exc}")
            index += 1
    raise KeyDerivationExhausted(
        f"could not derive a valid child key after {max_attempts} attempts"
    )


def derive_link_key(
    seed: bytes, host: str, max_attempts: Optional[int] = None
) -> LinkKey:
    """
    Derives the signing key used for LNURL-auth on `host`.
    Indexes >= 2^31 are hardened derivations. A step that yields an invalid
    key is retried with the next index.
    """
    max_attempts = max_attempts or settings.lnurl_auth_max_derivation_attempts
    key = HDKey.from_seed(seed)
    for index in link_key_path(seed, host):
        key = _derive_child(key, index, max_attempts)
    private_key = key.key
    return LinkKey(private_key, private_key.get_public_key())


class LinkKeyDeriver:
    def __init__(
        self,
        seed_store: SeedStore,
        on_seed_created: Optional[Callable[[], Awaitable[None]]] = None,
        max_attempts: Optional[int] = None,
    ):
        self.seed_store = seed_store
        self.on_seed_created = on_seed_created
        self.max_attempts = max_attempts

    async def derive(self, host: str) -> LinkKey:
        seed, created = await self.seed_store.get_or_create()
        if created:
            logger.info("created a new lnurl-auth seed, requesting a backup")
            if self.on_seed_created:
                await self.on_seed_created()
        return derive_link_key(seed, host, self.max_attempts)
