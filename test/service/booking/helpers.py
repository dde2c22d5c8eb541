"""Builders shared by booking tests"""

from datetime import date
from typing import Any, Optional

import attrs

from src.service.booking.app.dto.booking_draft import BookingDraft
from src.service.booking.domain.entity.booking_entity import (
    BookingDetails,
    BookingItem,
    EmergencyContact,
    Participant,
    PaymentInfo,
    UserInfo,
)
from src.service.booking.domain.enum.booking_type import BookingType
from src.service.booking.domain.enum.payment_status import PaymentStatus


def make_participants(count: int) -> list[Participant]:
    return [
        Participant(
            name=f'Traveler {i}',
            age=30 + i,
            phone='0912345678',
            email=f'traveler{i}@example.com',
            id_type='passport',
            id_number=f'P{i:07d}',
        )
        for i in range(count)
    ]


def make_draft(
    *,
    booking_type: BookingType = BookingType.TOUR,
    amount: int | float = 25000,
    participants: int = 2,
    payment_status: PaymentStatus = PaymentStatus.PAID,
    user_id: Optional[str] = None,
    **overrides: Any,
) -> BookingDraft:
    draft = BookingDraft(
        type=booking_type,
        user_id=user_id,
        item=BookingItem(id='item-001', title='Island Hopping Tour', cover_image='cover.jpg'),
        user_info=UserInfo(name='Ana', email='ana@example.com', phone='0912345678'),
        booking_details=BookingDetails(
            start_date=date(2026, 11, 1),
            end_date=date(2026, 11, 3),
            participant_count=participants,
            participants=make_participants(participants),
            emergency_contact=EmergencyContact(name='Ben', phone='0987654321'),
        ),
        payment_info=PaymentInfo(
            payment_id='pay_123',
            order_id='order_123',
            amount=amount,
            currency='TWD',
            status=payment_status,
        ),
    )
    return attrs.evolve(draft, **overrides) if overrides else draft


def booking_request_json(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        'type': 'tour',
        'item': {'id': 'item-001', 'title': 'Island Hopping Tour', 'cover_image': 'cover.jpg'},
        'user_info': {'name': 'Ana', 'email': 'ana@example.com', 'phone': '0912345678'},
        'booking_details': {
            'start_date': '2026-11-01',
            'end_date': '2026-11-03',
            'participant_count': 1,
            'participants': [
                {
                    'name': 'Ana',
                    'age': 31,
                    'phone': '0912345678',
                    'email': 'ana@example.com',
                    'id_type': 'passport',
                    'id_number': 'P0000001',
                }
            ],
        },
        'payment_info': {
            'payment_id': 'pay_123',
            'amount': 25000,
            'currency': 'TWD',
            'status': 'paid',
        },
    }
    body.update(overrides)
    return body
