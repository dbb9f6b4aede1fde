"""
Rotation selector.

Decides on every query which image the frame shows. There is no timer:
the decision is recomputed lazily from the stored status and configuration.

State is implicit in Status:
    Unset     current_image_id == -1
    Selected  current_image_id >= 0

When the current image has been shown for longer than the configured
duration (or nothing is selected yet) the selector advances to the next
image and records the switch; otherwise it returns the current image
untouched. A failed pick never writes the status.
"""
from typing import Optional
import logging
import random

from app.errors import NotFoundError
from app.schemas import Config, Image, Status
from app.services.config_store import ConfigurationStore
from app.services.image_repository import ImageRepository
from app.services.status_store import Clock, StatusStore, utc_now

logger = logging.getLogger(__name__)


class RotationSelector:

    def __init__(
        self,
        images: ImageRepository,
        config: ConfigurationStore,
        status: StatusStore,
        clock: Clock = utc_now,
    ):
        self._images = images
        self._config = config
        self._status = status
        self._clock = clock

    async def current_image(self) -> Image:
        """
        Image to display now.

        Raises:
            NotFoundError: If no image is registered
            CorruptRecordError: If status or configuration cannot be read
        """
        status = await self._status.get_status()
        config = await self._config.get_config()

        if status.current_image_id < 0 or self._expired(status, config):
            return await self._advance(status, config)

        try:
            return await self._images.get_image(status.current_image_id)
        except NotFoundError:
            logger.warning(
                f"Current image {status.current_image_id} no longer exists, advancing"
            )
            return await self._advance(status, config)

    def _expired(self, status: Status, config: Config) -> bool:
        elapsed = (self._clock() - status.last_switch).total_seconds()
        return elapsed > config.image_duration

    async def _advance(self, status: Status, config: Config) -> Image:
        if config.random_order:
            image = await self._pick_random(status)
        else:
            image = await self._pick_sequential(status)

        await self._status.advance_status(image.id)
        logger.info(f"Switched display from image {status.current_image_id} to {image.id}")
        return image

    async def _pick_sequential(self, status: Status) -> Image:
        try:
            return await self._images.get_next_image(status.current_image_id)
        except NotFoundError:
            if status.current_image_id < 0:
                raise
            # Current id dropped out of the order: start over from the front
            return await self._images.get_next_image(-1)

    async def _pick_random(self, status: Status) -> Image:
        order_ids = await self._images.list_order()
        image_id = pick_random_id(order_ids, status)
        if image_id is None:
            raise NotFoundError("No images registered")
        return await self._images.get_image(image_id)


def pick_random_id(order_ids: list, status: Status) -> Optional[int]:
    """
    Deterministic random pick for the next switch.

    The generator is seeded from the stored seed and switch count, so the
    same status always yields the same choice. The current image is never
    picked twice in a row unless it is the only one.
    """
    candidates = [i for i in order_ids if i != status.current_image_id] or list(order_ids)
    if not candidates:
        return None
    rng = random.Random(f"{status.seed}:{status.switch_count}")
    return rng.choice(candidates)
