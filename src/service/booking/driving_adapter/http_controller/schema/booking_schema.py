from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.service.booking.domain.entity.booking_analytics_entity import BookingAnalytics
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.entity.user_trip_entity import UserTrip
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType
from src.service.booking.domain.enum.payment_status import PaymentStatus
from src.service.booking.domain.enum.sync_state import SyncState


class BookingItemSchema(BaseModel):
    id: str
    title: str
    cover_image: Optional[str] = None
    description: Optional[str] = None


class UserInfoSchema(BaseModel):
    name: str
    email: str
    phone: str


class ParticipantSchema(BaseModel):
    name: str
    age: int
    phone: str
    email: str
    id_type: str
    id_number: str


class EmergencyContactSchema(BaseModel):
    name: str
    phone: str


class BookingDetailsSchema(BaseModel):
    start_date: date
    end_date: Optional[date] = None
    participant_count: int
    participants: List[ParticipantSchema] = []
    emergency_contact: Optional[EmergencyContactSchema] = None
    special_requests: Optional[str] = None


class PaymentInfoSchema(BaseModel):
    payment_id: str
    order_id: Optional[str] = None
    amount: int | float
    currency: str
    status: PaymentStatus
    paid_at: Optional[datetime] = None


class BookingCreateRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'type': 'tour',
                'item': {'id': 'tour-001', 'title': 'Island Hopping', 'cover_image': None},
                'user_info': {'name': 'Ana', 'email': 'ana@example.com', 'phone': '0912345678'},
                'booking_details': {
                    'start_date': '2026-11-01',
                    'end_date': '2026-11-03',
                    'participant_count': 1,
                },
                'payment_info': {
                    'payment_id': 'pay_123',
                    'amount': 25000,
                    'currency': 'TWD',
                    'status': 'paid',
                },
            }
        },
    }

    user_id: Optional[str] = None
    type: BookingType
    item: BookingItemSchema
    user_info: UserInfoSchema
    booking_details: BookingDetailsSchema
    payment_info: PaymentInfoSchema
    status: Optional[BookingStatus] = None


class BookingCommitResponse(BaseModel):
    id: str
    sync_state: SyncState


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatus


class AttachDocumentRequest(BaseModel):
    pdf_url: str = Field(min_length=1)


class BookingResponse(BaseModel):
    id: str
    user_id: str
    type: BookingType
    status: BookingStatus
    item: BookingItemSchema
    user_info: UserInfoSchema
    booking_details: BookingDetailsSchema
    payment_info: PaymentInfoSchema
    pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, booking: Booking) -> 'BookingResponse':
        details = booking.booking_details
        payment = booking.payment_info
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            type=booking.type,
            status=booking.status,
            item=BookingItemSchema(
                id=booking.item.id,
                title=booking.item.title,
                cover_image=booking.item.cover_image,
                description=booking.item.description,
            ),
            user_info=UserInfoSchema(
                name=booking.user_info.name,
                email=booking.user_info.email,
                phone=booking.user_info.phone,
            ),
            booking_details=BookingDetailsSchema(
                start_date=details.start_date,
                end_date=details.end_date,
                participant_count=details.participant_count,
                participants=[
                    ParticipantSchema(
                        name=p.name,
                        age=p.age,
                        phone=p.phone,
                        email=p.email,
                        id_type=p.id_type,
                        id_number=p.id_number,
                    )
                    for p in details.participants
                ],
                emergency_contact=(
                    EmergencyContactSchema(
                        name=details.emergency_contact.name,
                        phone=details.emergency_contact.phone,
                    )
                    if details.emergency_contact
                    else None
                ),
                special_requests=details.special_requests,
            ),
            payment_info=PaymentInfoSchema(
                payment_id=payment.payment_id,
                order_id=payment.order_id,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                paid_at=payment.paid_at,
            ),
            pdf_url=booking.pdf_url,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class UserTripResponse(BaseModel):
    id: str
    type: BookingType
    title: str
    cover_image: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    status: BookingStatus
    total_amount: int | float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, trip: UserTrip) -> 'UserTripResponse':
        return cls(
            id=trip.id,
            type=trip.type,
            title=trip.title,
            cover_image=trip.cover_image,
            start_date=trip.start_date,
            end_date=trip.end_date,
            status=trip.status,
            total_amount=trip.total_amount,
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )


class AnalyticsResponse(BaseModel):
    total_revenue: int | float
    total_bookings: int
    bookings_by_type: dict[str, int | float]
    revenue_by_type: dict[str, int | float]
    last_updated: Optional[datetime] = None

    @classmethod
    def from_entity(cls, analytics: BookingAnalytics) -> 'AnalyticsResponse':
        return cls(
            total_revenue=analytics.total_revenue,
            total_bookings=analytics.total_bookings,
            bookings_by_type=analytics.bookings_by_type,
            revenue_by_type=analytics.revenue_by_type,
            last_updated=analytics.last_updated,
        )
