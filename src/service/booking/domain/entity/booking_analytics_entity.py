from datetime import datetime
from typing import Any, Dict, Optional

import attrs

from src.service.booking.domain.entity.booking_entity import parse_datetime
from src.service.booking.domain.enum.booking_type import BookingType


def _zero_by_type() -> Dict[str, int | float]:
    return {str(t): 0 for t in BookingType}


@attrs.define
class BookingAnalytics:
    """Aggregate counters at analytics/main, only ever changed through increments"""

    total_revenue: int | float = 0
    total_bookings: int = 0
    bookings_by_type: Dict[str, int | float] = attrs.field(factory=_zero_by_type)
    revenue_by_type: Dict[str, int | float] = attrs.field(factory=_zero_by_type)
    last_updated: Optional[datetime] = None

    def to_document(self) -> dict[str, Any]:
        return {
            'totalRevenue': self.total_revenue,
            'totalBookings': self.total_bookings,
            'bookingsByType': dict(self.bookings_by_type),
            'revenueByType': dict(self.revenue_by_type),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'BookingAnalytics':
        return cls(
            total_revenue=data.get('totalRevenue', 0),
            total_bookings=data.get('totalBookings', 0),
            bookings_by_type={**_zero_by_type(), **(data.get('bookingsByType') or {})},
            revenue_by_type={**_zero_by_type(), **(data.get('revenueByType') or {})},
            last_updated=parse_datetime(data.get('lastUpdated')),
        )
