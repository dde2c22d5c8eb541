from datetime import datetime, timezone
from typing import Any, Dict, Optional

import attrs

from src.service.booking.domain.entity.booking_entity import parse_datetime
from src.service.booking.domain.enum.sync_state import SyncState


@attrs.define
class PendingSyncRecord:
    booking_id: str
    booking: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    state: SyncState = SyncState.PENDING_SYNC
    attempts: int = 0
    last_error: Optional[str] = None

    @classmethod
    def create(cls, *, booking: Dict[str, Any], error: str) -> 'PendingSyncRecord':
        now = datetime.now(timezone.utc)
        return cls(
            booking_id=booking['id'],
            booking=booking,
            last_error=error,
            created_at=now,
            updated_at=now,
        )

    def record_failure(self, *, error: str, max_attempts: int) -> 'PendingSyncRecord':
        attempts = self.attempts + 1
        return attrs.evolve(
            self,
            attempts=attempts,
            last_error=error,
            state=SyncState.FAILED if attempts >= max_attempts else SyncState.PENDING_SYNC,
            updated_at=datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bookingId': self.booking_id,
            'booking': self.booking,
            'state': str(self.state),
            'attempts': self.attempts,
            'lastError': self.last_error,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PendingSyncRecord':
        return cls(
            booking_id=data['bookingId'],
            booking=data['booking'],
            state=SyncState(data['state']),
            attempts=data.get('attempts', 0),
            last_error=data.get('lastError'),
            created_at=parse_datetime(data['createdAt']),  # type: ignore[arg-type]
            updated_at=parse_datetime(data['updatedAt']),  # type: ignore[arg-type]
        )
