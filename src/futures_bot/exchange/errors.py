"""Exchange error classification.

The exchange answers failed calls with ``{"code": <int>, "msg": <str>}``.
Classification matches substrings of ``msg`` in the order listed in
TRIGGER_PHRASES; the first match wins. The numeric ``code`` is parsed and
kept on the classification but is deliberately NOT used for matching.
Binance does publish stable codes (-2021 immediate trigger, -2022 reduce-only
rejected, -4059 no need to change position side, -1021 timestamp outside
recvWindow), so switching to them would be more robust to wording changes;
that is an open question and the message text stays the source of truth.
"""

import json

from futures_bot.models import ErrorClassification, ErrorKind

TRIGGER_PHRASES: tuple[tuple[str, ErrorKind], ...] = (
    ("Order would immediately trigger", ErrorKind.IMMEDIATE_TRIGGER),
    ("502 Bad Gateway", ErrorKind.SERVER_UNAVAILABLE),
    ("ReduceOnly Order is rejected", ErrorKind.REDUCE_ONLY_REJECTED),
    ("No need to change position side", ErrorKind.NO_POSITION_SIDE_CHANGE),
    ("No such host is known", ErrorKind.TRANSIENT_DNS),
    (
        "Timestamp for this request is outside of the recvWindow",
        ErrorKind.AUTH_TIMESTAMP_SKEW,
    ),
)


def classify(message: str) -> ErrorKind:
    """Map an exchange error message to an ErrorKind.

    >>> classify("Order would immediately trigger.")
    <ErrorKind.IMMEDIATE_TRIGGER: 'immediate_trigger'>
    """
    for phrase, kind in TRIGGER_PHRASES:
        if phrase in message:
            return kind
    return ErrorKind.UNMAPPED


def classify_response(body: str, http_status: int | None = None) -> ErrorClassification:
    """Classify a raw error response body.

    Bodies that are not the usual JSON object (an HTML 502 page from a proxy,
    for instance) are matched on their full text.
    """
    code: int | None = None
    message = body
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        payload = None

    if isinstance(payload, dict):
        message = str(payload.get("msg", body))
        raw_code = payload.get("code")
        if isinstance(raw_code, int):
            code = raw_code

    return ErrorClassification(
        kind=classify(message),
        message=message,
        code=code,
        http_status=http_status,
    )
