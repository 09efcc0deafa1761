from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

HOURS_QUANTUM = Decimal('0.000001')
MILLISECONDS_PER_HOUR = Decimal(3_600_000)


def current_time() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def session_hours(check_in_time: datetime, check_out_time: datetime) -> Decimal:
    """
    Elapsed time between two timestamps in hours, rounded half-up to six places.

    The delta is taken in whole milliseconds first, so sub-second presence
    still counts toward the total.
    """
    delta = check_out_time - check_in_time
    milliseconds = (
        delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000
    )
    hours = Decimal(milliseconds) / MILLISECONDS_PER_HOUR
    return hours.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)
