import base64
from typing import Optional


def load_macaroon(macaroon: Optional[str] = None) -> str:
    """Returns hex version of a macaroon encoded in base64 or the file path."""

    if not macaroon:
        raise ValueError("No macaroon provided.")

    # if the macaroon is a file path, load it and return hex version
    if macaroon.split(".")[-1] == "macaroon":
        with open(macaroon, "rb") as f:
            macaroon_bytes = f.read()
            return macaroon_bytes.hex()

    # if macaroon is a provided string check if it is hex, if so, return
    try:
        bytes.fromhex(macaroon)
        return macaroon
    except ValueError:
        pass

    # convert the base64 macaroon to hex
    try:
        return base64.b64decode(macaroon, validate=True).hex()
    except ValueError as exc:
        raise ValueError("Macaroon is neither hex, base64 nor a file.") from exc
