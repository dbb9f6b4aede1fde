"""
Display configuration, kept as a single record in the configuration bucket.
"""
import logging

from app.errors import CorruptRecordError
from app.schemas import Config
from app.store import KeyValueStore
from app.utils.codec import decode_record, encode_record

logger = logging.getLogger(__name__)

CONFIG_BUCKET = "configuration"
CONFIG_KEY = b"config"


class ConfigurationStore:

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def get_config(self) -> Config:
        """
        Read the configuration record.

        Raises:
            CorruptRecordError: If the record is missing or malformed
        """
        async with self._store.read() as tx:
            raw = await tx.bucket(CONFIG_BUCKET).get(CONFIG_KEY)
        if raw is None:
            raise CorruptRecordError("Configuration record is missing")
        try:
            return decode_record(raw, Config)
        except ValueError as e:
            raise CorruptRecordError(str(e)) from e

    async def update_config(self, config: Config) -> None:
        """Overwrite the configuration record. Values are validated by the caller."""
        async with self._store.write() as tx:
            await tx.bucket(CONFIG_BUCKET).put(CONFIG_KEY, encode_record(config))
        logger.info(
            f"Configuration updated: image_duration={config.image_duration}s, "
            f"random_order={config.random_order}"
        )
