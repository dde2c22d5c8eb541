"""
File-backed pending sync store

One JSON file per booking under PENDING_SYNC_DIR:
    {booking_id}.json → PendingSyncRecord.to_dict()

Writes go to a temp file first and are renamed into place.
"""

from pathlib import Path
from typing import List, Optional

import anyio
import orjson

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_pending_sync_store import IPendingSyncStore
from src.service.booking.domain.entity.pending_sync_record_entity import PendingSyncRecord
from src.service.booking.domain.enum.sync_state import SyncState


class FilePendingSyncStoreImpl(IPendingSyncStore):
    def __init__(self, *, directory: Path) -> None:
        self._directory = anyio.Path(directory)

    def _path_for(self, booking_id: str) -> anyio.Path:
        return self._directory / f'{booking_id}.json'

    @Logger.io
    async def save(self, *, record: PendingSyncRecord) -> None:
        await self._directory.mkdir(parents=True, exist_ok=True)
        target = self._path_for(record.booking_id)
        tmp = target.with_name(f'{record.booking_id}.json.tmp')
        await tmp.write_bytes(orjson.dumps(record.to_dict()))
        await tmp.replace(target)

    async def get(self, *, booking_id: str) -> Optional[PendingSyncRecord]:
        path = self._path_for(booking_id)
        if not await path.exists():
            return None
        return PendingSyncRecord.from_dict(orjson.loads(await path.read_bytes()))

    async def list_by_state(self, *, state: SyncState) -> List[PendingSyncRecord]:
        if not await self._directory.exists():
            return []

        records: List[PendingSyncRecord] = []
        async for path in self._directory.glob('*.json'):
            try:
                record = PendingSyncRecord.from_dict(orjson.loads(await path.read_bytes()))
            except (orjson.JSONDecodeError, KeyError, ValueError) as e:
                Logger.base.error(f'❌ [PENDING_SYNC] Unreadable record {path.name}: {e}')
                continue
            if record.state == state:
                records.append(record)

        records.sort(key=lambda r: r.created_at)
        return records

    @Logger.io
    async def delete(self, *, booking_id: str) -> None:
        await self._path_for(booking_id).unlink(missing_ok=True)
