from datetime import date, datetime
from typing import Any, Optional

import attrs

from src.service.booking.domain.entity.booking_entity import parse_date, parse_datetime
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType


@attrs.define
class UserTrip:
    """Denormalized summary of one booking, kept under users/{userId}/trips"""

    id: str
    user_id: str
    type: BookingType
    title: str
    start_date: date
    status: BookingStatus
    total_amount: int | float
    cover_image: Optional[str] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'UserTrip':
        return cls(
            id=data['id'],
            user_id=data['userId'],
            type=BookingType(data['type']),
            title=data['title'],
            cover_image=data.get('coverImage'),
            start_date=parse_date(data['startDate']),  # type: ignore[arg-type]
            end_date=parse_date(data.get('endDate')),
            status=BookingStatus(data['status']),
            total_amount=data['totalAmount'],
            created_at=parse_datetime(data.get('createdAt')),
            updated_at=parse_datetime(data.get('updatedAt')),
        )
