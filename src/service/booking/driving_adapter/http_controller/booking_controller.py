from collections.abc import AsyncIterator
from typing import List

import anyio
from fastapi import APIRouter, Depends, status
from opentelemetry import trace
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.attach_booking_document_use_case import (
    AttachBookingDocumentUseCase,
)
from src.service.booking.app.command.create_booking_use_case import CreateBookingUseCase
from src.service.booking.app.command.update_booking_status_use_case import (
    UpdateBookingStatusUseCase,
)
from src.service.booking.app.dto.booking_draft import BookingDraft
from src.service.booking.app.query.get_analytics_use_case import GetAnalyticsUseCase
from src.service.booking.app.query.get_booking_use_case import GetBookingUseCase
from src.service.booking.app.query.list_user_bookings_use_case import ListUserBookingsUseCase
from src.service.booking.app.query.list_user_trips_use_case import ListUserTripsUseCase
from src.service.booking.app.query.subscribe_user_bookings_use_case import (
    SubscribeUserBookingsUseCase,
)
from src.service.booking.domain.entity.booking_entity import (
    Booking,
    BookingDetails,
    BookingItem,
    EmergencyContact,
    Participant,
    PaymentInfo,
    UserInfo,
)
from src.service.booking.driving_adapter.http_controller.auth.current_user import (
    get_current_user_id,
)
from src.service.booking.driving_adapter.http_controller.schema.booking_schema import (
    AnalyticsResponse,
    AttachDocumentRequest,
    BookingCommitResponse,
    BookingCreateRequest,
    BookingResponse,
    BookingStatusUpdateRequest,
    UserTripResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _to_draft(request: BookingCreateRequest) -> BookingDraft:
    details = request.booking_details
    payment = request.payment_info
    return BookingDraft(
        user_id=request.user_id,
        type=request.type,
        status=request.status,
        item=BookingItem(
            id=request.item.id,
            title=request.item.title,
            cover_image=request.item.cover_image,
            description=request.item.description,
        ),
        user_info=UserInfo(
            name=request.user_info.name,
            email=request.user_info.email,
            phone=request.user_info.phone,
        ),
        booking_details=BookingDetails(
            start_date=details.start_date,
            end_date=details.end_date,
            participant_count=details.participant_count,
            participants=[
                Participant(
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
                EmergencyContact(
                    name=details.emergency_contact.name, phone=details.emergency_contact.phone
                )
                if details.emergency_contact
                else None
            ),
            special_requests=details.special_requests,
        ),
        payment_info=PaymentInfo(
            payment_id=payment.payment_id,
            order_id=payment.order_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status,
            paid_at=payment.paid_at,
        ),
    )


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_booking(
    request: BookingCreateRequest,
    current_user_id: str = Depends(get_current_user_id),
    use_case: CreateBookingUseCase = Depends(CreateBookingUseCase.depends),
) -> BookingCommitResponse:
    with tracer.start_as_current_span('controller.create_booking') as span:
        span.set_attribute('user.id', current_user_id)
        span.set_attribute('booking.type', str(request.type))

        result = await use_case.execute(draft=_to_draft(request))

        span.set_attribute('booking.id', result.booking_id)
        return BookingCommitResponse(id=result.booking_id, sync_state=result.sync_state)


@router.get('/my_bookings', response_model=List[BookingResponse])
@Logger.io
async def list_my_bookings(
    current_user_id: str = Depends(get_current_user_id),
    use_case: ListUserBookingsUseCase = Depends(ListUserBookingsUseCase.depends),
) -> List[BookingResponse]:
    bookings = await use_case.execute(user_id=current_user_id)
    return [BookingResponse.from_entity(b) for b in bookings]


@router.get('/my_trips', response_model=List[UserTripResponse])
@Logger.io
async def list_my_trips(
    current_user_id: str = Depends(get_current_user_id),
    use_case: ListUserTripsUseCase = Depends(ListUserTripsUseCase.depends),
) -> List[UserTripResponse]:
    trips = await use_case.execute(user_id=current_user_id)
    return [UserTripResponse.from_entity(t) for t in trips]


@router.get('/analytics')
@Logger.io
async def get_analytics(
    current_user_id: str = Depends(get_current_user_id),
    use_case: GetAnalyticsUseCase = Depends(GetAnalyticsUseCase.depends),
) -> AnalyticsResponse:
    return AnalyticsResponse.from_entity(await use_case.execute())


# ============================ SSE Endpoint ============================


@router.get('/my_bookings/sse', status_code=status.HTTP_200_OK)
@Logger.io
async def stream_my_bookings(
    current_user_id: str = Depends(get_current_user_id),
    use_case: SubscribeUserBookingsUseCase = Depends(SubscribeUserBookingsUseCase.depends),
) -> EventSourceResponse:
    """
    SSE stream of the user's bookings

    Sends the current list on connect, then at most one refreshed list per
    throttle window while bookings change.
    """
    user_id = current_user_id
    send_stream, receive_stream = anyio.create_memory_object_stream[List[Booking]](
        max_buffer_size=10
    )

    async def on_bookings(bookings: List[Booking]) -> None:
        try:
            send_stream.send_nowait(bookings)
        except anyio.WouldBlock:
            Logger.base.warning(f'⚠️ [SSE] Client for user={user_id} is slow, dropping snapshot')

    subscription = await use_case.execute(user_id=user_id, callback=on_bookings)
    Logger.base.info(f'📡 [SSE] Client subscribed: user={user_id}')

    async def event_generator() -> AsyncIterator[dict[str, str]]:
        try:
            async with receive_stream:
                async for bookings in receive_stream:
                    payload = [BookingResponse.from_entity(b).model_dump(mode='json') for b in bookings]
                    yield {'event': 'bookings', 'data': orjson.dumps(payload).decode()}
        except anyio.get_cancelled_exc_class():
            Logger.base.info(f'🔌 [SSE] Client disconnected: user={user_id}')
            raise
        finally:
            await subscription.unsubscribe()
            await send_stream.aclose()

    return EventSourceResponse(event_generator())


@router.get('/{booking_id}')
@Logger.io
async def get_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    use_case: GetBookingUseCase = Depends(GetBookingUseCase.depends),
) -> BookingResponse:
    booking = await use_case.execute(booking_id=booking_id)
    # Someone else's booking is reported as missing
    if booking is None or booking.user_id != current_user_id:
        raise NotFoundError('Booking not found')
    return BookingResponse.from_entity(booking)


@router.patch('/{booking_id}/status', status_code=status.HTTP_200_OK)
@Logger.io
async def update_booking_status(
    booking_id: str,
    request: BookingStatusUpdateRequest,
    current_user_id: str = Depends(get_current_user_id),
    use_case: UpdateBookingStatusUseCase = Depends(UpdateBookingStatusUseCase.depends),
) -> BookingResponse:
    booking = await use_case.execute(
        booking_id=booking_id, new_status=request.status, actor_id=current_user_id
    )
    return BookingResponse.from_entity(booking)


@router.put('/{booking_id}/document', status_code=status.HTTP_200_OK)
@Logger.io
async def attach_booking_document(
    booking_id: str,
    request: AttachDocumentRequest,
    current_user_id: str = Depends(get_current_user_id),
    use_case: AttachBookingDocumentUseCase = Depends(AttachBookingDocumentUseCase.depends),
) -> BookingResponse:
    booking = await use_case.execute(
        booking_id=booking_id, pdf_url=request.pdf_url, actor_id=current_user_id
    )
    return BookingResponse.from_entity(booking)
