"""
First-run initialization of the key-value store.

Creates the bucket tables and fills empty buckets:
    images/order   from image files already present in the image directory
    configuration  with the default display configuration
    status         with "nothing selected yet" and the Unix epoch
"""
from datetime import datetime, timezone
import logging
import random

from app.schemas import Config, Status
from app.services.config_store import CONFIG_BUCKET, CONFIG_KEY
from app.services.image_files import ImageFileStore
from app.services.image_repository import (
    METADATA_BUCKET,
    ORDER_BUCKET,
    insert_image,
    write_order,
)
from app.services.status_store import STATUS_BUCKET, STATUS_KEY
from app.store import KeyValueStore, Transaction
from app.utils.codec import encode_record

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


async def prepopulate_images(tx: Transaction, files: ImageFileStore, suffix: str = ".jpg") -> int:
    """
    Register every matching file of the image directory, in filename order.
    Only runs when the metadata bucket is empty.

    Returns:
        int: Number of images registered
    """
    metadata = tx.bucket(METADATA_BUCKET)
    if not await metadata.is_empty():
        return 0

    filenames = files.list_candidates(suffix)
    logger.info(f"Found {len(filenames)} images to register in {files.image_dir}")

    image_ids = []
    for filename in filenames:
        image = await insert_image(metadata, filename)
        image_ids.append(image.id)
    await write_order(tx.bucket(ORDER_BUCKET), image_ids)

    logger.info("Persisted all image metadata")
    return len(image_ids)


async def init_buckets(
    store: KeyValueStore,
    files: ImageFileStore,
    default_config: Config,
    suffix: str = ".jpg",
) -> None:
    """Create the schema and populate empty buckets. Safe to call on every start."""
    await store.create_schema()

    async with store.write() as tx:
        await prepopulate_images(tx, files, suffix)

    async with store.write() as tx:
        status = tx.bucket(STATUS_BUCKET)
        if await status.is_empty():
            initial = Status(
                current_image_id=-1,
                last_switch=EPOCH,
                seed=random.randrange(2 ** 31),
            )
            await status.put(STATUS_KEY, encode_record(initial))
            logger.info("Status record initialized")

    async with store.write() as tx:
        config = tx.bucket(CONFIG_BUCKET)
        if await config.is_empty():
            await config.put(CONFIG_KEY, encode_record(default_config))
            logger.info(
                f"Configuration initialized: image_duration={default_config.image_duration}s, "
                f"random_order={default_config.random_order}"
            )
