from datetime import date, datetime
import re
from typing import Any, List, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType
from src.service.booking.domain.enum.payment_status import PaymentStatus


_CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@attrs.define
class BookingItem:
    id: str
    title: str
    cover_image: Optional[str] = None
    description: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'coverImage': self.cover_image,
            'description': self.description,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'BookingItem':
        return cls(
            id=data['id'],
            title=data['title'],
            cover_image=data.get('coverImage'),
            description=data.get('description'),
        )


@attrs.define
class UserInfo:
    name: str
    email: str
    phone: str

    def to_document(self) -> dict[str, Any]:
        return {'name': self.name, 'email': self.email, 'phone': self.phone}

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'UserInfo':
        return cls(name=data['name'], email=data['email'], phone=data['phone'])


@attrs.define
class Participant:
    name: str
    age: int
    phone: str
    email: str
    id_type: str
    id_number: str

    def to_document(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'age': self.age,
            'phone': self.phone,
            'email': self.email,
            'idType': self.id_type,
            'idNumber': self.id_number,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'Participant':
        return cls(
            name=data['name'],
            age=data['age'],
            phone=data['phone'],
            email=data['email'],
            id_type=data['idType'],
            id_number=data['idNumber'],
        )


@attrs.define
class EmergencyContact:
    name: str
    phone: str

    def to_document(self) -> dict[str, Any]:
        return {'name': self.name, 'phone': self.phone}

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'EmergencyContact':
        return cls(name=data['name'], phone=data['phone'])


@attrs.define
class BookingDetails:
    start_date: date
    participant_count: int
    end_date: Optional[date] = None
    participants: List[Participant] = attrs.field(factory=list)
    emergency_contact: Optional[EmergencyContact] = None
    special_requests: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        return {
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'participantCount': self.participant_count,
            'participants': [p.to_document() for p in self.participants],
            'emergencyContact': (
                self.emergency_contact.to_document() if self.emergency_contact else None
            ),
            'specialRequests': self.special_requests,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'BookingDetails':
        contact = data.get('emergencyContact')
        return cls(
            start_date=parse_date(data['startDate']),  # type: ignore[arg-type]
            end_date=parse_date(data.get('endDate')),
            participant_count=data['participantCount'],
            participants=[Participant.from_document(p) for p in data.get('participants') or []],
            emergency_contact=EmergencyContact.from_document(contact) if contact else None,
            special_requests=data.get('specialRequests'),
        )


@attrs.frozen
class PaymentInfo:
    payment_id: str
    amount: int | float
    currency: str
    status: PaymentStatus
    order_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    def to_document(self) -> dict[str, Any]:
        return {
            'paymentId': self.payment_id,
            'orderId': self.order_id,
            'amount': self.amount,
            'currency': self.currency,
            'status': str(self.status),
            'paidAt': self.paid_at.isoformat() if self.paid_at else None,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'PaymentInfo':
        return cls(
            payment_id=data['paymentId'],
            order_id=data.get('orderId'),
            amount=data['amount'],
            currency=data['currency'],
            status=PaymentStatus(data['status']),
            paid_at=parse_datetime(data.get('paidAt')),
        )


@attrs.define
class Booking:
    id: str = attrs.field(on_setattr=attrs.setters.frozen)
    user_id: str = attrs.field(on_setattr=attrs.setters.frozen)
    type: BookingType = attrs.field(converter=BookingType)
    item: BookingItem = attrs.field()
    user_info: UserInfo = attrs.field()
    booking_details: BookingDetails = attrs.field()
    payment_info: PaymentInfo = attrs.field(on_setattr=attrs.setters.frozen)
    status: BookingStatus = BookingStatus.PENDING
    pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: str,
        user_id: str,
        type: BookingType,
        item: BookingItem,
        user_info: UserInfo,
        booking_details: BookingDetails,
        payment_info: PaymentInfo,
        status: Optional[BookingStatus] = None,
    ) -> 'Booking':
        if not item.title or not item.title.strip():
            raise DomainError('Booking item title is required')

        details = booking_details
        if details.participant_count < 1:
            raise DomainError('participantCount must be at least 1')
        if details.participants and len(details.participants) != details.participant_count:
            raise DomainError('participantCount must match the number of participants')
        if details.end_date is not None and details.end_date < details.start_date:
            raise DomainError('endDate must not be before startDate')

        if payment_info.amount < 0:
            raise DomainError('Payment amount must not be negative')
        if not _CURRENCY_PATTERN.match(payment_info.currency):
            raise DomainError('Currency must be a 3-letter code')

        if status is None:
            status = (
                BookingStatus.CONFIRMED
                if payment_info.status == PaymentStatus.PAID
                else BookingStatus.PENDING
            )

        return cls(
            id=id,
            user_id=user_id,
            type=type,
            item=item,
            user_info=user_info,
            booking_details=booking_details,
            payment_info=payment_info,
            status=status,
        )

    @property
    def total_amount(self) -> int | float:
        return self.payment_info.amount

    @Logger.io
    def transition_to(self, new_status: BookingStatus) -> 'Booking':
        if new_status == self.status:
            raise DomainError(f'Booking {self.id} is already {self.status}')
        if not self.status.can_transition_to(new_status):
            raise DomainError(f'Cannot change booking status from {self.status} to {new_status}')
        return attrs.evolve(self, status=new_status)

    def attach_document(self, pdf_url: str) -> 'Booking':
        if not pdf_url or not pdf_url.strip():
            raise DomainError('Document URL is required')
        return attrs.evolve(self, pdf_url=pdf_url)

    def to_document(self) -> dict[str, Any]:
        """Stored fields except the server-assigned timestamps"""
        document = {
            'id': self.id,
            'userId': self.user_id,
            'type': str(self.type),
            'item': self.item.to_document(),
            'userInfo': self.user_info.to_document(),
            'bookingDetails': self.booking_details.to_document(),
            'paymentInfo': self.payment_info.to_document(),
            'status': str(self.status),
        }
        if self.pdf_url is not None:
            document['pdfUrl'] = self.pdf_url
        return document

    def trip_document(self) -> dict[str, Any]:
        """User trip index entry derived from this booking"""
        return {
            'id': self.id,
            'userId': self.user_id,
            'type': str(self.type),
            'title': self.item.title,
            'coverImage': self.item.cover_image,
            'startDate': _iso(self.booking_details.start_date),
            'endDate': _iso(self.booking_details.end_date),
            'status': str(self.status),
            'totalAmount': self.total_amount,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> 'Booking':
        return cls(
            id=data['id'],
            user_id=data['userId'],
            type=data['type'],
            item=BookingItem.from_document(data['item']),
            user_info=UserInfo.from_document(data['userInfo']),
            booking_details=BookingDetails.from_document(data['bookingDetails']),
            payment_info=PaymentInfo.from_document(data['paymentInfo']),
            status=BookingStatus(data['status']),
            pdf_url=data.get('pdfUrl'),
            created_at=parse_datetime(data.get('createdAt')),
            updated_at=parse_datetime(data.get('updatedAt')),
        )
