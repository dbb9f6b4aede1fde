"""
FastAPI dependencies wiring the rotation engine to the store opened at startup.
"""
from fastapi import Depends, Request

from app.services.config_store import ConfigurationStore
from app.services.image_files import ImageFileStore
from app.services.image_repository import ImageRepository
from app.services.rotation import RotationSelector
from app.services.status_store import StatusStore
from app.store import KeyValueStore, get_store


def get_file_store(request: Request) -> ImageFileStore:
    return request.app.state.files


def get_image_repository(
    store: KeyValueStore = Depends(get_store),
    files: ImageFileStore = Depends(get_file_store),
) -> ImageRepository:
    return ImageRepository(store, files)


def get_config_store(store: KeyValueStore = Depends(get_store)) -> ConfigurationStore:
    return ConfigurationStore(store)


def get_status_store(store: KeyValueStore = Depends(get_store)) -> StatusStore:
    return StatusStore(store)


def get_rotation_selector(
    images: ImageRepository = Depends(get_image_repository),
    config: ConfigurationStore = Depends(get_config_store),
    status: StatusStore = Depends(get_status_store),
) -> RotationSelector:
    return RotationSelector(images, config, status)
