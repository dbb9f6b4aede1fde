"""
Test Configuration
==================

Pytest fixtures for the picture frame backend. Every test gets its own
SQLite store file and image directory under tmp_path.
"""

import io

import httpx
import pytest
from PIL import Image as PILImage

from app.schemas import Config, Status
from app.services.config_store import ConfigurationStore
from app.services.image_files import ImageFileStore
from app.services.image_repository import ImageRepository
from app.services.initializer import init_buckets
from app.services.status_store import STATUS_BUCKET, STATUS_KEY, StatusStore
from app.store import KeyValueStore
from app.utils.codec import decode_record, encode_record


def jpeg_bytes(size=(4, 3), color="red"):
    """Encode a tiny solid-color JPEG."""
    buffer = io.BytesIO()
    PILImage.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def make_jpeg():
    return jpeg_bytes


@pytest.fixture
def image_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def files(image_dir):
    return ImageFileStore(image_dir)


@pytest.fixture
async def store(tmp_path, files):
    """Initialized store with default configuration and no images."""
    kv = KeyValueStore(f"sqlite+aiosqlite:///{tmp_path / 'frame.db'}")
    await init_buckets(kv, files, Config(image_duration=60, random_order=False))
    yield kv
    await kv.close()


@pytest.fixture
def images(store, files):
    return ImageRepository(store, files)


@pytest.fixture
def config_store(store):
    return ConfigurationStore(store)


@pytest.fixture
def status_store(store):
    return StatusStore(store)


@pytest.fixture
def add_image(images, image_dir):
    """Create a file on disk and register it, like an upload does."""

    async def _add(filename):
        (image_dir / filename).write_bytes(jpeg_bytes())
        return await images.save_image(filename)

    return _add


@pytest.fixture
def set_status(store):
    """Overwrite fields of the stored status record directly."""

    async def _set(**fields):
        async with store.write() as tx:
            bucket = tx.bucket(STATUS_BUCKET)
            status = decode_record(await bucket.get(STATUS_KEY), Status)
            await bucket.put(STATUS_KEY, encode_record(status.model_copy(update=fields)))

    return _set


@pytest.fixture
async def client(store, files):
    """HTTP client bound to the app, using the per-test store."""
    from app.main import app

    app.state.store = store
    app.state.files = files
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as http_client:
        yield http_client
