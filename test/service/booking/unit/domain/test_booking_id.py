import pytest

from src.service.booking.domain.value_object.booking_id import (
    generate_booking_id,
    is_valid_booking_id,
    to_base36,
    type_code_for,
)


@pytest.mark.unit
class TestBookingId:
    @pytest.mark.parametrize(
        'booking_type, code',
        [('tour', 'BT'), ('curated', 'CE'), ('vehicle', 'VR'), ('experience', 'EX'), ('cruise', 'GN')],
    )
    def test_type_codes(self, booking_type, code):
        assert type_code_for(booking_type) == code

    def test_format(self):
        booking_id = generate_booking_id('tour', prefix='HR', now_ms=36**3)

        prefix, code, time_part, random_part = booking_id.split('-')
        assert (prefix, code, time_part) == ('HR', 'BT', '1000')
        assert len(random_part) == 8
        assert random_part.isalnum() and random_part.upper() == random_part
        assert is_valid_booking_id(booking_id)

    def test_base36(self):
        assert to_base36(0) == '0'
        assert to_base36(35) == 'Z'
        assert to_base36(36) == '10'

    def test_ten_thousand_ids_in_the_same_millisecond_are_unique(self):
        ids = {generate_booking_id('vehicle', now_ms=1_760_000_000_000) for _ in range(10_000)}
        assert len(ids) == 10_000
