"""Request signing for the exchange's SIGNED endpoints."""

import hashlib
import hmac
from collections.abc import Mapping
from urllib.parse import urlencode


def build_query(params: Mapping[str, object]) -> str:
    """Serialize parameters into a query string, preserving insertion order.

    The signature covers this exact string, so the order of ``params`` is
    the order the exchange receives.
    """
    return urlencode([(key, _format_value(value)) for key, value in params.items()])


def sign(secret: str, message: str) -> str:
    """Return the hex HMAC-SHA256 digest of ``message`` keyed with ``secret``."""
    return hmac.new(
        secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
