from abc import ABC, abstractmethod
from pathlib import Path
import asyncio
import logging
import secrets
import time

from smartroommate.config import StorageConfig
from smartroommate.core.exceptions import ValidationFailed

PUBLIC_PREFIX = "/uploads"


class BaseBlobStore(ABC):
    @abstractmethod
    async def save(self, filename: str, content_type: str | None, data: bytes) -> str:
        """
        Stores an image and returns its public url.
        :param filename: original file name, only its extension is kept
        :param content_type:
        :param data:
        :return:
        """
        raise NotImplementedError()


class LocalBlobStore(BaseBlobStore):
    """Keeps uploaded images on local disk, served by the app under /uploads"""

    def __init__(self, config: StorageConfig, logger: logging.Logger | None = None):
        self.config = config
        self.directory = Path(config.upload_dir)
        self.logger = logger or logging.getLogger(__name__)

    def _unique_name(self, filename: str) -> str:
        suffix = Path(filename or "").suffix.lower()
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{suffix}"

    def _write(self, name: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(data)

    async def save(self, filename: str, content_type: str | None, data: bytes) -> str:
        if not (content_type or "").startswith("image/"):
            raise ValidationFailed("Only image files are allowed.")
        if len(data) > self.config.max_file_size:
            raise ValidationFailed("File too large.")

        name = self._unique_name(filename)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, name, data)
        self.logger.debug("Stored upload %s (%d bytes)", name, len(data))
        return f"{self.config.public_base_url.rstrip('/')}{PUBLIC_PREFIX}/{name}"
