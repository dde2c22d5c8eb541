from typing import Optional

import attrs

from src.service.booking.domain.entity.booking_entity import (
    BookingDetails,
    BookingItem,
    PaymentInfo,
    UserInfo,
)
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType


@attrs.define
class BookingDraft:
    """Caller-supplied booking payload; id and timestamps are assigned on commit"""

    type: BookingType
    item: BookingItem
    user_info: UserInfo
    booking_details: BookingDetails
    payment_info: PaymentInfo
    user_id: Optional[str] = None
    status: Optional[BookingStatus] = None
