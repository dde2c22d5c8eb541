BOOKINGS_COLLECTION = 'bookings'
ANALYTICS_PATH = 'analytics/main'


def booking_path(booking_id: str) -> str:
    return f'{BOOKINGS_COLLECTION}/{booking_id}'


def user_trips_collection(user_id: str) -> str:
    return f'users/{user_id}/trips'


def user_trip_path(user_id: str, booking_id: str) -> str:
    return f'{user_trips_collection(user_id)}/{booking_id}'


def user_bookings_cache_key(user_id: str) -> str:
    return f'user-bookings-{user_id}'
