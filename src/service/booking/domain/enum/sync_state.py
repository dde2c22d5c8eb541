from enum import StrEnum


class SyncState(StrEnum):
    """Outcome of a booking commit as seen by the caller"""

    COMMITTED = 'committed'
    PENDING_SYNC = 'pending_sync'  # held locally, awaiting replay into the store
    FAILED = 'failed'  # replay attempts exhausted
