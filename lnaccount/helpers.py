import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from loguru import logger

from lnaccount.settings import settings


def check_callback_url(url: str, rules: list[str] | None = None):
    rules = settings.lnurl_callback_url_rules if rules is None else rules
    if not rules:
        # no rules, all urls are allowed
        return
    u = urlparse(url)
    for rule in rules:
        try:
            if re.match(rule, f"{u.scheme}://{u.netloc}") is not None:
                return
        except re.error:
            logger.debug(f"Invalid regex rule: '{rule}'. ")
            continue
    raise ValueError(
        f"Callback not allowed. URL: {url}. Netloc: {u.netloc}. "
        f"Please check your callback url rules."
    )


def url_with_params(url: str, **params) -> str:
    """Adds `params` to the query string of `url`, keeping existing ones."""
    u = urlparse(url)
    query = parse_qsl(u.query, keep_blank_values=True)
    query.extend((key, str(value)) for key, value in params.items())
    return urlunparse(u._replace(query=urlencode(query)))


def normalize_endpoint(endpoint: str, add_proto=True) -> str:
    endpoint = endpoint[:-1] if endpoint.endswith("/") else endpoint
    if add_proto:
        endpoint = (
            f"https://{endpoint}" if not endpoint.startswith("http") else endpoint
        )
    return endpoint


def msat_to_sat_ceil(msat: int) -> int:
    return -(-msat // 1000)


def msat_to_sat_floor(msat: int) -> int:
    return msat // 1000
