# inventory_engine/core/forecast.py
import math
from datetime import date, timedelta
from typing import Dict, Optional, Tuple
import enum

from inventory_engine.config import config
from inventory_engine.exceptions import CalculationError
from inventory_engine.utils.math_utils import round_to_multiple


class StockStatus(enum.Enum):
    """Forecast status, ordered by severity."""
    OK = 'ok'
    WARNING = 'warning'
    CRITICAL = 'critical'
    OUT_OF_STOCK = 'out_of_stock'

    def __str__(self):
        return self.value

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    StockStatus.OK: 0,
    StockStatus.WARNING: 1,
    StockStatus.CRITICAL: 2,
    StockStatus.OUT_OF_STOCK: 3,
}


class VelocityStatus:
    """Derived forecast view for one component. Never persisted."""

    def __init__(
        self,
        velocity: float,
        days_remaining: Optional[float],
        reorder_point: float,
        status: StockStatus,
        status_reason: str,
        lead_time_days: int,
        safety_stock_days: int
    ):
        self.velocity = velocity
        self.days_remaining = days_remaining
        self.reorder_point = reorder_point
        self.status = status
        self.status_reason = status_reason
        self.lead_time_days = lead_time_days
        self.safety_stock_days = safety_stock_days

    def __repr__(self):
        return (f"VelocityStatus(status={self.status.value}, velocity={self.velocity:.3f}, "
                f"days_remaining={self.days_remaining})")

    def to_dict(self) -> Dict:
        return {
            'velocity': self.velocity,
            'days_remaining': self.days_remaining,
            'reorder_point': self.reorder_point,
            'status': self.status.value,
            'status_reason': self.status_reason,
            'lead_time_days': self.lead_time_days,
            'safety_stock_days': self.safety_stock_days
        }


def resolve_lead_time(
    component_lead_time: Optional[int],
    supplier_lead_time: Optional[int] = None,
    default_lead_time: Optional[int] = None
) -> int:
    """Pick the lead time for a component.

    The component's own lead time wins, then its preferred supplier's
    default, then the configured fallback.
    """
    if component_lead_time is not None:
        return component_lead_time
    if supplier_lead_time is not None:
        return supplier_lead_time
    if default_lead_time is not None:
        return default_lead_time
    return config.business_rules['default_lead_time']


def calculate_velocity(consumed_over_window: float, window_days: int) -> float:
    """Average units consumed per day over the window.

    Raises:
        CalculationError: If the window is not positive or consumption is negative
    """
    if window_days is None or window_days <= 0:
        raise CalculationError(f"Window days must be positive, got {window_days}")
    if consumed_over_window < 0:
        raise CalculationError(f"Consumption cannot be negative, got {consumed_over_window}")
    return consumed_over_window / window_days


def calculate_days_remaining(available: float, velocity: float) -> Optional[float]:
    """Days until stock-out at the current velocity, None without velocity."""
    if velocity <= 0:
        return None
    return available / velocity


def calculate_reorder_point(velocity: float, lead_time_days: int, safety_stock_days: int) -> float:
    """Units expected to be consumed during lead time plus the safety buffer."""
    return velocity * (lead_time_days + safety_stock_days)


def get_stock_status(
    available: float,
    days_remaining: Optional[float],
    lead_time_days: int,
    safety_stock_days: int,
    warning_buffer_days: int = 7
) -> Tuple[StockStatus, str]:
    """Classify stock.

    Checked in order: nothing available, inside lead time plus safety,
    inside that plus the warning buffer, otherwise ok. Components with
    stock and no consumption are ok.

    Returns:
        Tuple of (status, human readable reason)
    """
    if available <= 0:
        return StockStatus.OUT_OF_STOCK, 'No available inventory'

    if days_remaining is None:
        return StockStatus.OK, 'No sales velocity data'

    critical_threshold = lead_time_days + safety_stock_days
    warning_threshold = critical_threshold + warning_buffer_days

    if days_remaining <= critical_threshold:
        return (
            StockStatus.CRITICAL,
            f"Only {days_remaining:.1f} days of stock remaining "
            f"(need {critical_threshold} for lead time + safety)"
        )

    if days_remaining <= warning_threshold:
        return (
            StockStatus.WARNING,
            f"{days_remaining:.1f} days of stock remaining (approaching reorder point)"
        )

    return StockStatus.OK, f"{days_remaining:.1f} days of stock remaining"


def calculate_velocity_status(
    available: float,
    consumed_over_window: float,
    window_days: int = 30,
    lead_time_days: Optional[int] = None,
    safety_stock_days: Optional[int] = None,
    warning_buffer_days: Optional[int] = None
) -> VelocityStatus:
    """Compute the velocity and stock status for one component.

    Args:
        available: on_hand minus reserved, floored at zero
        consumed_over_window: Component units consumed in the window
        window_days: Length of the window in days
        lead_time_days: Lead time; None uses the configured default
        safety_stock_days: Safety buffer; None uses the configured default
        warning_buffer_days: Extra days beyond critical that count as warning

    Returns:
        VelocityStatus
    """
    rules = config.business_rules
    lead_time = resolve_lead_time(lead_time_days, default_lead_time=rules['default_lead_time'])
    safety_days = safety_stock_days if safety_stock_days is not None else rules['default_safety_stock_days']
    buffer_days = warning_buffer_days if warning_buffer_days is not None else rules['warning_buffer_days']

    velocity = calculate_velocity(consumed_over_window, window_days)
    days_remaining = calculate_days_remaining(available, velocity)
    reorder_point = calculate_reorder_point(velocity, lead_time, safety_days)
    status, reason = get_stock_status(available, days_remaining, lead_time, safety_days, buffer_days)

    return VelocityStatus(
        velocity=velocity,
        days_remaining=days_remaining,
        reorder_point=reorder_point,
        status=status,
        status_reason=reason,
        lead_time_days=lead_time,
        safety_stock_days=safety_days
    )


def calculate_reorder_date(
    days_remaining: Optional[float],
    lead_time_days: int,
    safety_stock_days: int,
    today: Optional[date] = None
) -> Optional[date]:
    """Latest date to place an order, today if already overdue, None without velocity."""
    if days_remaining is None:
        return None

    today = today or date.today()
    days_until_reorder = days_remaining - lead_time_days - safety_stock_days
    if days_until_reorder <= 0:
        return today

    return today + timedelta(days=math.floor(days_until_reorder))


def calculate_suggested_order_qty(
    velocity: float,
    available: float,
    on_order: float,
    min_order_qty: Optional[int] = None,
    target_days: Optional[int] = None
) -> int:
    """Quantity needed to cover target_days of demand, rounded up to the MOQ.

    Stock already on order counts towards the target.
    """
    if target_days is None:
        target_days = config.business_rules['suggested_order_target_days']

    shortfall = velocity * target_days - available - on_order
    if shortfall <= 0:
        return 0

    multiple = min_order_qty if min_order_qty and min_order_qty > 0 else 1
    return int(round_to_multiple(shortfall, multiple))
