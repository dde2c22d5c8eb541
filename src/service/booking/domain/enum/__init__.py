"""Booking Domain Enums"""

from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType
from src.service.booking.domain.enum.payment_status import PaymentStatus
from src.service.booking.domain.enum.sync_state import SyncState

__all__ = ['BookingStatus', 'BookingType', 'PaymentStatus', 'SyncState']
