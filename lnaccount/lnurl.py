from typing import Optional, Union
from urllib.parse import parse_qs, urlparse

from lnurl import LnAddress, Lnurl
from lnurl import decode as lnurl_decode
from lnurl import encode as lnurl_encode
from lnurl.exceptions import LnurlException

from lnaccount.exceptions import LnurlNotFound


def encode(url: str) -> str:
    """Bech32 encodes `url` into an uppercase `LNURL1...` string (LUD-01)."""
    try:
        lnurl = lnurl_encode(url)
    except (LnurlException, ValueError) as exc:
        raise ValueError(f"cannot encode '{url}' as lnurl: {exc!s}") from exc
    return str(lnurl.bech32).upper()


def decode(lnurl: str) -> str:
    """Decodes a bech32 `LNURL1...` string into the url it wraps."""
    try:
        return str(lnurl_decode(lnurl))
    except (LnurlException, ValueError) as exc:
        raise LnurlNotFound(f"'{lnurl}' is not a valid bech32 lnurl.") from exc


def _parse(candidate: str) -> Optional[Union[Lnurl, LnAddress]]:
    if candidate.lower().startswith("lightning:"):
        candidate = candidate[len("lightning:") :]
    # LUD-01 fallback scheme, the lnurl sits in the `lightning` parameter
    fallback = parse_qs(urlparse(candidate).query).get("lightning")
    if fallback:
        candidate = fallback[0]
    try:
        if "@" in candidate and "://" not in candidate:
            return LnAddress(candidate)
        return Lnurl(candidate)
    except (LnurlException, ValueError):
        return None


def find_lnurl(text: str) -> Optional[Union[Lnurl, LnAddress]]:
    """
    Finds the first LNURL in `text`: a bech32 lnurl, a LUD-17 url or a
    LUD-16 lightning address. Returns `None` if nothing is found.
    """
    for candidate in text.split():
        found = _parse(candidate.strip("\"'<>"))
        if found is not None:
            return found
    return None


def extract(text: str) -> str:
    """The url that has to be fetched for the LNURL found in `text`."""
    found = find_lnurl(text)
    if found is None:
        raise LnurlNotFound(f"'{text}' does not contain an LNURL.")
    url = urlparse(str(found.url))
    # onion services are reached over plain http
    if url.hostname and url.hostname.endswith(".onion"):
        url = url._replace(scheme="http")
    return url.geturl()


def url_query(url: str) -> dict[str, str]:
    """First value of every query parameter of `url`."""
    return {
        key: values[0]
        for key, values in parse_qs(urlparse(url).query).items()
        if values
    }
