from abc import ABC, abstractmethod
from typing import List, Optional

from src.service.booking.domain.entity.pending_sync_record_entity import PendingSyncRecord
from src.service.booking.domain.enum.sync_state import SyncState


class IPendingSyncStore(ABC):
    """Local holding area for bookings whose commit failed in degraded mode"""

    @abstractmethod
    async def save(self, *, record: PendingSyncRecord) -> None:
        pass

    @abstractmethod
    async def get(self, *, booking_id: str) -> Optional[PendingSyncRecord]:
        pass

    @abstractmethod
    async def list_by_state(self, *, state: SyncState) -> List[PendingSyncRecord]:
        pass

    @abstractmethod
    async def delete(self, *, booking_id: str) -> None:
        pass
