"""Request signing for the exchange API.

Every request carries three headers derived from the current Unix time in
milliseconds, the HTTP method and the request path without its query string:

    signature = base64(RSA-PSS-SHA256(timestamp_ms + METHOD + path))

PSS uses MGF1(SHA-256) with salt length equal to the digest length.
"""

import base64
import re

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from src.ff_common.datetime_utils import now_ms
from src.ff_common.errors import ConfigurationError

ACCESS_KEY_HEADER = "KALSHI-ACCESS-KEY"
SIGNATURE_HEADER = "KALSHI-ACCESS-SIGNATURE"
TIMESTAMP_HEADER = "KALSHI-ACCESS-TIMESTAMP"

_PEM_RE = re.compile(r"(-----BEGIN [^-]+-----)(.+?)(-----END [^-]+-----)", re.DOTALL)


def normalize_pem(raw: str) -> str:
    """Undo the ways a PEM gets mangled in env vars.

    Literal ``\\n`` sequences become newlines; a PEM squashed onto one line is
    re-wrapped into 64-character body lines.
    """
    pem = raw.replace("\\n", "\n").strip()
    if "\n" in pem:
        return pem
    match = _PEM_RE.search(pem)
    if match is None:
        return pem
    header, body, footer = match.groups()
    body = body.replace(" ", "")
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return "\n".join([header, *lines, footer])


def load_private_key(raw: str) -> rsa.RSAPrivateKey:
    if not raw.strip():
        raise ConfigurationError("EXCHANGE_PRIVATE_KEY is not set")
    try:
        key = serialization.load_pem_private_key(normalize_pem(raw).encode(), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"EXCHANGE_PRIVATE_KEY could not be parsed: {e}") from None
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigurationError("EXCHANGE_PRIVATE_KEY must be an RSA key")
    return key


def sign_message(private_key: rsa.RSAPrivateKey, timestamp_ms: str, method: str, path: str) -> str:
    """Base64 RSA-PSS signature over timestamp + METHOD + path (query stripped)."""
    path_without_query = path.split("?", 1)[0]
    message = f"{timestamp_ms}{method.upper()}{path_without_query}".encode()
    signature = private_key.sign(
        message,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH),
        hashes.SHA256(),
    )
    return base64.b64encode(signature).decode()


class RequestSigner:
    """Holds the access key id and private key; produces auth headers."""

    def __init__(self, key_id: str, private_key: rsa.RSAPrivateKey) -> None:
        if not key_id:
            raise ConfigurationError("EXCHANGE_API_KEY_ID is not set")
        self._key_id = key_id
        self._private_key = private_key

    @classmethod
    def from_pem(cls, key_id: str, pem: str) -> "RequestSigner":
        if not key_id:
            raise ConfigurationError("EXCHANGE_API_KEY_ID is not set")
        return cls(key_id, load_private_key(pem))

    def headers(self, method: str, path: str, timestamp_ms: str | None = None) -> dict[str, str]:
        ts = timestamp_ms or now_ms()
        return {
            ACCESS_KEY_HEADER: self._key_id,
            SIGNATURE_HEADER: sign_message(self._private_key, ts, method, path),
            TIMESTAMP_HEADER: ts,
        }
