"""Post-mutation account report for operator visibility.

After every order submission or cancellation the lifecycle asks the monitor
for a snapshot of position amounts and the open-order count. The report is
diagnostic only: nothing downstream decides on it.
"""

from decimal import Decimal

from futures_bot.exceptions import (
    ExchangeError,
    PositionInvariantError,
    RetryExhaustedError,
    TransportError,
)
from futures_bot.exchange.client import BinanceFuturesClient
from futures_bot.logging import get_logger
from futures_bot.models import AccountSnapshot, PositionSide, PositionSnapshot

logger = get_logger(__name__)


def _side_of(entry: dict) -> PositionSide:
    side_name = entry.get("positionSide")
    try:
        return PositionSide(side_name)
    except ValueError as exc:
        raise PositionInvariantError(
            f"Unexpected positionSide in positionRisk: {side_name!r}"
        ) from exc


def parse_positions(entries: list[dict]) -> list[PositionSnapshot]:
    """Interpret a positionRisk response.

    In hedge mode the response holds exactly one LONG and one SHORT entry, in
    either order. In one-way mode the first entry is BOTH.

    Raises:
        PositionInvariantError: If a side is none of the above, or a hedge-mode
            response does not hold one LONG and one SHORT entry.
    """
    if not entries:
        raise PositionInvariantError("positionRisk returned no entries")

    first = entries[0]
    side = _side_of(first)
    if side is PositionSide.BOTH:
        return [PositionSnapshot(PositionSide.BOTH, Decimal(str(first["positionAmt"])))]

    if len(entries) < 2:
        raise PositionInvariantError("Hedge-mode positionRisk must contain two entries")

    second = entries[1]
    sides = (side, _side_of(second))
    if set(sides) != {PositionSide.LONG, PositionSide.SHORT}:
        raise PositionInvariantError(
            f"Hedge-mode positionRisk must hold one LONG and one SHORT entry, "
            f"got {sides[0].value} and {sides[1].value}"
        )

    by_side = {
        sides[0]: Decimal(str(first["positionAmt"])),
        sides[1]: Decimal(str(second["positionAmt"])),
    }
    return [
        PositionSnapshot(PositionSide.SHORT, by_side[PositionSide.SHORT]),
        PositionSnapshot(PositionSide.LONG, by_side[PositionSide.LONG]),
    ]


class AccountMonitor:
    """Reports position size and open-order count.

    Args:
        client: Futures client used for positionRisk and openOrders.
    """

    def __init__(self, client: BinanceFuturesClient) -> None:
        self._client = client

    async def snapshot(self) -> AccountSnapshot:
        """Fetch the current account view.

        Raises:
            PositionInvariantError: On an unexpected positionRisk shape.
        """
        positions = parse_positions(await self._client.get_position_risk())
        open_orders = await self._client.get_open_orders()
        return AccountSnapshot(positions=positions, open_orders=len(open_orders))

    async def report(self) -> AccountSnapshot | None:
        """Log a snapshot.

        Request failures are logged and swallowed: the report runs after an
        order call whose outcome must reach the caller unchanged.

        Raises:
            PositionInvariantError: The account is in a state this client
                does not understand, which is fatal for the caller.
        """
        try:
            snapshot = await self.snapshot()
        except (ExchangeError, RetryExhaustedError, TransportError):
            logger.error("account_report_failed", exc_info=True)
            return None

        for position in snapshot.positions:
            logger.info(
                "position_amount",
                position_side=position.side.value,
                amount=str(position.amount),
            )
        logger.info("open_orders", count=snapshot.open_orders)
        return snapshot
