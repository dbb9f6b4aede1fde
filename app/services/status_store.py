"""
Rotation status, kept as a single record in the status bucket.
Only the rotation selector advances it.
"""
from datetime import datetime, timezone
from typing import Callable
import logging

from app.errors import CorruptRecordError
from app.schemas import Status
from app.store import Bucket, KeyValueStore
from app.utils.codec import decode_record, encode_record

logger = logging.getLogger(__name__)

STATUS_BUCKET = "status"
STATUS_KEY = b"status"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def _read_status(bucket: Bucket) -> Status:
    raw = await bucket.get(STATUS_KEY)
    if raw is None:
        raise CorruptRecordError("Status record is missing")
    try:
        return decode_record(raw, Status)
    except ValueError as e:
        raise CorruptRecordError(str(e)) from e


class StatusStore:

    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def get_status(self) -> Status:
        """
        Read the status record.

        Raises:
            CorruptRecordError: If the record is missing or malformed
        """
        async with self._store.read() as tx:
            return await _read_status(tx.bucket(STATUS_BUCKET))

    async def advance_status(self, new_id: int) -> Status:
        """
        Switch to new_id and restart the display timer.
        Read, modify and write happen in one write transaction.
        """
        async with self._store.write() as tx:
            bucket = tx.bucket(STATUS_BUCKET)
            status = await _read_status(bucket)
            status = status.model_copy(update={
                "current_image_id": new_id,
                "last_switch": self._clock(),
                "switch_count": status.switch_count + 1,
            })
            await bucket.put(STATUS_KEY, encode_record(status))

        logger.debug(f"Status advanced to image {new_id} (switch #{status.switch_count})")
        return status
