"""
Continuation token for paginated spatial queries.

The token records where the previous page stopped: the covering parameters, the
index of the cell being read, and the store's cursor inside that cell. It is
carried by clients as an opaque, URL-safe, signed string.
"""

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..common import InvalidContinuationTokenError, config, get_logger
from .covering import CoveringParams

logger = get_logger("query.token")

TOKEN_VERSION = 1
DEFAULT_TOKEN_SECRET = "geoquery-continuation-token"


@dataclass(frozen=True)
class ContinuationToken:
    """Resume point of a paginated query."""

    params: CoveringParams
    cell_index: int
    store_cursor: Optional[Any] = None
    skip: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "params": self.params.to_dict(),
            "fingerprint": self.params.fingerprint(),
            "cell_index": self.cell_index,
            "store_cursor": self.store_cursor,
            "skip": self.skip,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContinuationToken":
        """Create from dictionary."""
        params = CoveringParams.from_dict(data["params"])
        if params.fingerprint() != data["fingerprint"]:
            raise InvalidContinuationTokenError("Token parameters do not match fingerprint")

        cell_index = data["cell_index"]
        skip = data.get("skip", 0)
        if not isinstance(cell_index, int) or cell_index < 0:
            raise InvalidContinuationTokenError(f"Invalid cell index: {cell_index!r}")
        if not isinstance(skip, int) or skip < 0:
            raise InvalidContinuationTokenError(f"Invalid skip count: {skip!r}")

        return cls(
            params=params,
            cell_index=cell_index,
            store_cursor=data.get("store_cursor"),
            skip=skip,
        )


def _canonical(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()


def _signature(payload: Dict[str, Any], secret: Optional[str]) -> str:
    key = (secret or config.token.secret or DEFAULT_TOKEN_SECRET).encode()
    return hmac.new(key, _canonical(payload), hashlib.sha256).hexdigest()


def encode_token(token: ContinuationToken, secret: Optional[str] = None) -> str:
    """
    Serialize a continuation token to an opaque string.

    Args:
        token: Token to encode
        secret: HMAC secret overriding config.token.secret

    Returns:
        URL-safe base64 string without padding
    """
    payload = token.to_dict()
    envelope = {"v": TOKEN_VERSION, "p": payload, "s": _signature(payload, secret)}
    return base64.urlsafe_b64encode(_canonical(envelope)).decode().rstrip("=")


def decode_token(encoded: str, secret: Optional[str] = None) -> ContinuationToken:
    """
    Parse and verify a continuation token string.

    Raises:
        InvalidContinuationTokenError: If the token is malformed, was signed
            with another secret, or has an unsupported version
    """
    if not isinstance(encoded, str) or not encoded:
        raise InvalidContinuationTokenError("Continuation token must be a non-empty string")

    try:
        raw = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        envelope = json.loads(raw)
    except (binascii.Error, ValueError) as e:
        raise InvalidContinuationTokenError(f"Malformed continuation token: {e}") from e

    if not isinstance(envelope, dict) or not isinstance(envelope.get("p"), dict):
        raise InvalidContinuationTokenError("Malformed continuation token envelope")
    if envelope.get("v") != TOKEN_VERSION:
        raise InvalidContinuationTokenError(
            f"Unsupported continuation token version: {envelope.get('v')!r}"
        )

    payload = envelope["p"]
    signature = envelope.get("s")
    if not isinstance(signature, str) or not hmac.compare_digest(
        signature, _signature(payload, secret)
    ):
        logger.warning("Rejected continuation token with invalid signature")
        raise InvalidContinuationTokenError("Continuation token signature mismatch")

    try:
        return ContinuationToken.from_dict(payload)
    except InvalidContinuationTokenError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise InvalidContinuationTokenError(f"Invalid continuation token payload: {e}") from e
