"""
Image repository over two buckets.

``images`` maps an 8-byte id to the JSON Image record, ``order`` maps an
8-byte dense position to an 8-byte id and defines the display sequence.
Every mutation touches both buckets inside one write transaction.
"""
from typing import List, Sequence
import logging

from app.errors import CorruptRecordError, NotFoundError, ValidationFailedError
from app.schemas import Image, ImageType
from app.services.image_files import ImageFileStore
from app.store import Bucket, KeyValueStore
from app.utils.codec import decode_key, decode_record, encode_key, encode_record

logger = logging.getLogger(__name__)

METADATA_BUCKET = "images"
ORDER_BUCKET = "order"


async def _load_image(metadata: Bucket, image_id: int) -> Image:
    try:
        key = encode_key(image_id)
    except ValueError:
        raise NotFoundError(f"Image {image_id} not found")
    raw = await metadata.get(key)
    if raw is None:
        raise NotFoundError(f"Image {image_id} not found")
    try:
        return decode_record(raw, Image)
    except ValueError as e:
        raise CorruptRecordError(f"Image record {image_id} is unreadable: {e}") from e


async def _order_ids(order: Bucket) -> List[int]:
    return [decode_key(value) for _, value in await order.items()]


async def write_order(order: Bucket, image_ids: Sequence[int]) -> None:
    """Replace the whole order bucket with image_ids at positions 0..n-1."""
    await order.clear()
    for position, image_id in enumerate(image_ids):
        await order.put(encode_key(position), encode_key(image_id))


class ImageRepository:
    """CRUD and ordering operations on the image set."""

    def __init__(self, store: KeyValueStore, files: ImageFileStore):
        self._store = store
        self._files = files

    async def list_images(self) -> List[Image]:
        """
        Images in display order.
        Order entries without a readable metadata record are skipped.
        """
        images = []
        async with self._store.read() as tx:
            metadata = tx.bucket(METADATA_BUCKET)
            for image_id in await _order_ids(tx.bucket(ORDER_BUCKET)):
                try:
                    images.append(await _load_image(metadata, image_id))
                except NotFoundError:
                    logger.debug(f"Skipping stale order entry for image {image_id}")
                except CorruptRecordError as e:
                    logger.warning(f"Skipping unreadable image record {image_id}: {str(e)}")
        return images

    async def list_order(self) -> List[int]:
        """Raw image ids of the order bucket, front to back."""
        async with self._store.read() as tx:
            return await _order_ids(tx.bucket(ORDER_BUCKET))

    async def get_image(self, image_id: int) -> Image:
        async with self._store.read() as tx:
            return await _load_image(tx.bucket(METADATA_BUCKET), image_id)

    async def get_next_image(self, current_id: int) -> Image:
        """
        Image following current_id in display order, wrapping around.

        A negative current_id selects the first image.

        Raises:
            NotFoundError: If the order is empty, current_id is not part of
                the order, or the next entry has no metadata
        """
        async with self._store.read() as tx:
            order_ids = await _order_ids(tx.bucket(ORDER_BUCKET))
            if not order_ids:
                raise NotFoundError("No images registered")

            if current_id < 0:
                next_id = order_ids[0]
            else:
                try:
                    position = order_ids.index(current_id)
                except ValueError:
                    raise NotFoundError(f"Image {current_id} is not part of the display order")
                next_id = order_ids[(position + 1) % len(order_ids)]

            return await _load_image(tx.bucket(METADATA_BUCKET), next_id)

    async def save_image(
        self,
        filename: str,
        metadata: str = "",
        image_type: ImageType = ImageType.IMAGE,
    ) -> Image:
        """Register an image under the next sequence id and append it to the order."""
        async with self._store.write() as tx:
            image = await insert_image(tx.bucket(METADATA_BUCKET), filename, metadata, image_type)
            order = tx.bucket(ORDER_BUCKET)
            await order.put(encode_key(await order.count()), encode_key(image.id))

        logger.info(f"Saved image metadata: ID {image.id}, path={image.path}")
        return image

    async def reorder_images(self, image_ids: Sequence[int]) -> None:
        """
        Replace the display order.

        Raises:
            ValidationFailedError: If image_ids contains duplicates or is not
                exactly the set of registered images
        """
        image_ids = list(image_ids)
        if len(image_ids) != len(set(image_ids)):
            raise ValidationFailedError("Duplicate image IDs are not allowed")

        async with self._store.write() as tx:
            metadata = tx.bucket(METADATA_BUCKET)
            known_ids = {decode_key(key) for key, _ in await metadata.items()}
            missing = sorted(known_ids - set(image_ids))
            unknown = sorted(set(image_ids) - known_ids)
            if missing or unknown:
                raise ValidationFailedError(
                    f"Order must contain every image exactly once "
                    f"(missing: {missing}, unknown: {unknown})"
                )
            await write_order(tx.bucket(ORDER_BUCKET), image_ids)

        logger.info(f"Reordered {len(image_ids)} images")

    async def delete_image(self, image_id: int) -> Image:
        """
        Remove an image record, its order entry and its file.
        The file is removed last; if that fails the transaction rolls back
        and the image stays registered.

        Raises:
            NotFoundError: If the image does not exist
            ImageIOError: If the file cannot be removed
        """
        async with self._store.write() as tx:
            metadata = tx.bucket(METADATA_BUCKET)
            order = tx.bucket(ORDER_BUCKET)
            image = await _load_image(metadata, image_id)

            await metadata.delete(encode_key(image_id))
            remaining = [i for i in await _order_ids(order) if i != image_id]
            await write_order(order, remaining)

            # Last step before commit: a failed unlink rolls the records back.
            # The write lock is already held, so the commit itself only fails
            # on a disk error, which would leave the record without its file.
            if image.type == ImageType.IMAGE:
                await self._files.remove(image.path)

        logger.info(f"Deleted image: ID {image_id}, path={image.path}")
        return image


async def insert_image(
    metadata: Bucket,
    filename: str,
    description: str = "",
    image_type: ImageType = ImageType.IMAGE,
) -> Image:
    """Write one Image record under a fresh sequence id (inside the caller's transaction)."""
    image_id = await metadata.next_sequence()
    image = Image(id=image_id, path=filename, type=image_type, metadata=description)
    await metadata.put(encode_key(image.id), encode_record(image))
    return image
