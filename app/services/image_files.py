"""
Local image file service.
Stores uploaded image bytes in the configured image directory and removes
them again when an image is deleted.
"""
from pathlib import Path
from typing import List, Union
import asyncio
import logging

from app.errors import ImageIOError

logger = logging.getLogger(__name__)


class ImageFileStore:
    """File collaborator of the image repository, rooted at one directory."""

    def __init__(self, image_dir: Union[str, Path]):
        self.image_dir = Path(image_dir)

    def _resolve(self, filename: str) -> Path:
        """
        Map a client supplied filename to a path inside the image directory.

        Raises:
            ImageIOError: If the name is empty or would escape the directory
        """
        name = Path(filename or "").name
        if not name or name in (".", ".."):
            raise ImageIOError(f"Invalid image filename: {filename!r}")
        return self.image_dir / name

    @staticmethod
    def _write_exclusive(path: Path, content: bytes) -> Path:
        """
        Create path, or path with -1, -2, ... appended to the stem, whichever
        is free first. The name is claimed with O_EXCL so concurrent writers
        never share a file.
        """
        candidate = path
        counter = 1
        while True:
            try:
                with open(candidate, "xb") as handle:
                    handle.write(content)
                return candidate
            except FileExistsError:
                candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
                counter += 1

    def ensure_directory(self) -> None:
        try:
            self.image_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create image directory {self.image_dir}: {str(e)}")
            raise ImageIOError(f"Cannot create image directory {self.image_dir}: {e}") from e

    async def save(self, content: bytes, filename: str) -> str:
        """
        Write image bytes into the image directory.

        Args:
            content: Raw file content
            filename: Name provided by the client; only its base name is used

        Returns:
            str: Stored filename (relative to the image directory); an
                existing file is never overwritten, a numeric suffix is added

        Raises:
            ImageIOError: If the file cannot be written
        """
        requested = self._resolve(filename)
        self.ensure_directory()
        try:
            path = await asyncio.to_thread(self._write_exclusive, requested, content)
        except OSError as e:
            logger.error(f"Failed to write image file {requested}: {str(e)}")
            raise ImageIOError(f"Failed to write image file {requested.name}: {e}") from e

        logger.info(f"Stored image file: {path.name} ({len(content):,} bytes)")
        return path.name

    async def remove(self, filename: str) -> None:
        """
        Delete an image file from the image directory.
        A file that is already gone counts as removed.

        Raises:
            ImageIOError: If the file exists but cannot be deleted
        """
        path = self._resolve(filename)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning(f"Image file already absent, nothing to remove: {path}")
            return
        except OSError as e:
            logger.error(f"Failed to remove image file {path}: {str(e)}")
            raise ImageIOError(f"Failed to remove image file {path.name}: {e}") from e

        logger.info(f"Removed image file: {path.name}")

    def list_candidates(self, suffix: str = ".jpg") -> List[str]:
        """
        Filenames in the image directory with the given suffix, sorted by name.
        Creates the directory if it does not exist yet.
        """
        self.ensure_directory()
        try:
            return sorted(
                entry.name
                for entry in self.image_dir.iterdir()
                if entry.is_file() and entry.name.endswith(suffix)
            )
        except OSError as e:
            raise ImageIOError(f"Cannot read image directory {self.image_dir}: {e}") from e
