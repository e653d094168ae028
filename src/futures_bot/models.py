"""Shared data models for the futures trading client.

Prices and quantities sent to the exchange use Decimal. Candle prices stay
float: the resampler only compares and copies them, it never rounds.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"
    STOP_MARKET = "STOP_MARKET"


class PositionSide(str, Enum):
    """Which directional exposure an order affects.

    BOTH is the one-way mode side; LONG and SHORT exist only in hedge mode.
    """

    LONG = "LONG"
    SHORT = "SHORT"
    BOTH = "BOTH"


class OrderState(str, Enum):
    """Lifecycle of a single submission."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ErrorKind(str, Enum):
    """Normalized meaning of an exchange error message."""

    IMMEDIATE_TRIGGER = "immediate_trigger"
    SERVER_UNAVAILABLE = "server_unavailable"
    REDUCE_ONLY_REJECTED = "reduce_only_rejected"
    NO_POSITION_SIDE_CHANGE = "no_position_side_change"
    TRANSIENT_DNS = "transient_dns"
    AUTH_TIMESTAMP_SKEW = "auth_timestamp_skew"
    UNMAPPED = "unmapped"

    @property
    def is_transient(self) -> bool:
        """Whether a rebuilt request with a fresh timestamp may succeed."""
        return self in (ErrorKind.TRANSIENT_DNS, ErrorKind.AUTH_TIMESTAMP_SKEW)


class PriceField(str, Enum):
    """Which kline price a resampled value is read from."""

    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying one failed exchange call.

    ``code`` is the exchange's numeric error code. It is recorded for
    diagnostics only; classification is driven by ``message``.
    """

    kind: ErrorKind
    message: str
    code: int | None = None
    http_status: int | None = None


@dataclass(frozen=True)
class Candle:
    """One exchange-reported kline."""

    open_time: int  # Unix milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    close_time: int = 0

    @property
    def open_time_seconds(self) -> int:
        return self.open_time // 1000

    def price(self, field_name: PriceField) -> float:
        return getattr(self, field_name.value)


@dataclass
class ResampledBucket:
    """A candle aggregated over a caller-chosen period."""

    start_seconds: int
    open: float
    high: float
    low: float
    close: float


@dataclass
class OrderRequest:
    """Request to place an order on the futures exchange."""

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: Decimal
    position_side: PositionSide = PositionSide.BOTH
    price: Decimal | None = None
    stop_price: Decimal | None = None
    reduce_only: bool = False
    time_in_force: str | None = None

    def to_params(self) -> dict[str, str]:
        """Serialize into exchange query parameters, in submission order.

        ``reduceOnly`` is only meaningful in one-way mode; the exchange
        rejects it for LONG/SHORT position sides, so it is omitted there.
        """
        params: dict[str, str] = {
            "symbol": self.symbol,
            "side": self.side.value,
            "type": self.order_type.value,
        }
        if self.price is not None:
            params["price"] = str(self.price)
        if self.stop_price is not None:
            params["stopPrice"] = str(self.stop_price)
        if self.time_in_force is not None:
            params["timeInForce"] = self.time_in_force
        params["quantity"] = str(self.quantity)
        if self.position_side is PositionSide.BOTH and self.reduce_only:
            params["reduceOnly"] = "true"
        params["positionSide"] = self.position_side.value
        return params


@dataclass
class OrderResult:
    """Outcome of a submission, cancel or other mutating call."""

    http_status: int
    order_id: int | None = None
    update_time: int | None = None  # Unix milliseconds
    status: str | None = None
    fallback_used: bool = False
    no_op: bool = False
    raw: dict = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return self.http_status == 200


@dataclass
class PositionSnapshot:
    """Position amount for one side."""

    side: PositionSide
    amount: Decimal


@dataclass
class AccountSnapshot:
    """Diagnostic view of the account after a mutating call."""

    positions: list[PositionSnapshot]
    open_orders: int
