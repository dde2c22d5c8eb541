"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.booking.app.command import (
    attach_booking_document_use_case,
    create_booking_use_case,
    update_booking_status_use_case,
)
from src.service.booking.app.query import (
    get_analytics_use_case,
    get_booking_use_case,
    list_user_bookings_use_case,
    list_user_trips_use_case,
    subscribe_user_bookings_use_case,
)
from src.service.booking.driving_adapter.http_controller import booking_controller
from src.service.booking.driving_adapter.http_controller.auth import current_user


WIRE_MODULES: list[ModuleType] = [
    create_booking_use_case,
    update_booking_status_use_case,
    attach_booking_document_use_case,
    get_booking_use_case,
    list_user_bookings_use_case,
    list_user_trips_use_case,
    get_analytics_use_case,
    subscribe_user_bookings_use_case,
    booking_controller,
    current_user,
]
