from enum import StrEnum


class BookingType(StrEnum):
    TOUR = 'tour'
    VEHICLE = 'vehicle'
    CURATED = 'curated'
    EXPERIENCE = 'experience'
