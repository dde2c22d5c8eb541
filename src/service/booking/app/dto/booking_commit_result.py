import attrs

from src.service.booking.domain.enum.sync_state import SyncState


@attrs.frozen
class BookingCommitResult:
    booking_id: str
    sync_state: SyncState = SyncState.COMMITTED
