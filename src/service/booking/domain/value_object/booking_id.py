"""
Booking id generation

Format: {prefix}-{type code}-{time36}-{rand36}
    HR-BT-M2K9ZQ4A-7QX0PLK2

- time36: epoch milliseconds, upper-case base 36
- rand36: random upper-case base-36 characters from `secrets`
Generated without a store round-trip; the random suffix keeps ids generated
in the same millisecond apart.
"""

import re
import secrets
import string
import time
from typing import Optional


BASE36_ALPHABET = string.digits + string.ascii_uppercase
RANDOM_PART_LENGTH = 8

TYPE_CODES: dict[str, str] = {
    'tour': 'BT',
    'curated': 'CE',
    'vehicle': 'VR',
    'experience': 'EX',
}
GENERIC_TYPE_CODE = 'GN'

BOOKING_ID_PATTERN = re.compile(r'^[A-Z]+-(BT|CE|VR|EX|GN)-[0-9A-Z]+-[0-9A-Z]{4,}$')


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError('base36 encoding needs a non-negative integer')
    if value == 0:
        return '0'
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def type_code_for(booking_type: str) -> str:
    return TYPE_CODES.get(str(booking_type), GENERIC_TYPE_CODE)


def generate_booking_id(
    booking_type: str,
    *,
    prefix: str = 'HR',
    now_ms: Optional[int] = None,
) -> str:
    timestamp = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    random_part = ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_PART_LENGTH))
    return f'{prefix}-{type_code_for(booking_type)}-{to_base36(timestamp)}-{random_part}'


def is_valid_booking_id(booking_id: str) -> bool:
    return bool(BOOKING_ID_PATTERN.match(booking_id))
