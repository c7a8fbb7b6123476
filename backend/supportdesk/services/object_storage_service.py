"""Object Storage Service - Attachment paths on top of the storage backend"""
import asyncio
from typing import AsyncIterable, Iterable, Optional
from urllib.parse import urlparse

from .storage_providers import (
    DEFAULT_CONTENT_TYPE, LocalStorageProvider, StorageProvider, validate_relative_path
)
from ..domain.models import StorageFile
from ..domain.errors import InvalidObjectPathError, StorageConfigurationError
from ..utils.idgen import generate_object_id
from ..utils.logger import get_logger

logger = get_logger(__name__)

OBJECTS_PREFIX = "/objects/"
UPLOADS_DIR = "uploads"


def strip_object_prefix(object_path: str) -> str:
    """Drop a leading /objects/ or / from an entity path"""
    if object_path.startswith(OBJECTS_PREFIX):
        return object_path[len(OBJECTS_PREFIX):]
    if object_path.startswith("/"):
        return object_path[1:]
    return object_path


class ObjectStorageService:
    """
    Service for ticket attachment storage

    Clients upload straight to the signed URL and later send that URL back
    as the attachment reference; normalize_object_entity_path turns it into
    the stored relative path again.
    """

    def __init__(self, provider: StorageProvider):
        self.provider = provider

    @property
    def provider_type(self) -> str:
        return self.provider.provider_type

    def get_object_entity_upload_url(self, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        """Signed upload URL for a fresh uploads/<uuid> object"""
        relative_path = f"{UPLOADS_DIR}/{generate_object_id()}"
        url = self.provider.get_upload_url(relative_path, content_type)
        logger.info("Issued upload URL", extra={"object_path": relative_path, "provider": self.provider_type})
        return url

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        """Signed upload URL for a caller-chosen relative path"""
        return self.provider.get_upload_url(validate_relative_path(relative_path), content_type)

    def get_object_entity_file(self, object_path: str) -> StorageFile:
        """
        Open a stored object for streaming

        Raises:
            ObjectNotFoundError: Object does not exist
            InvalidObjectPathError: Path is empty or unsafe
        """
        return self.provider.get_file(strip_object_prefix(object_path or ""))

    def normalize_object_entity_path(self, raw_path: str) -> str:
        """
        Turn a client-submitted attachment reference into a relative path

        Plain paths only lose their /objects/ or / prefix. URLs go through
        the backend that issued them, falling back to the URL path.
        """
        if not raw_path:
            raise InvalidObjectPathError("Attachment path is empty")

        parsed = urlparse(raw_path)
        if not (parsed.scheme and parsed.netloc):
            return strip_object_prefix(raw_path)

        path = self.provider.path_from_url(raw_path)
        if path:
            return path
        return parsed.path.lstrip("/")

    def handle_local_upload(self, relative_path: Optional[str], chunks: Iterable[bytes]) -> int:
        """
        Stream a PUT body into local storage

        Raises:
            StorageConfigurationError: Local storage is not the active backend
            InvalidObjectPathError: Missing or unsafe path
        """
        return self._require_local(relative_path).save_stream(relative_path, chunks)

    async def receive_local_upload(self, relative_path: Optional[str], chunks: AsyncIterable[bytes]) -> int:
        """
        Same as handle_local_upload for a request body read asynchronously

        Disk writes run in a worker thread so the event loop keeps serving.
        """
        provider = self._require_local(relative_path)
        written = 0
        with provider.open_writer(relative_path) as handle:
            async for chunk in chunks:
                await asyncio.to_thread(handle.write, chunk)
                written += len(chunk)

        logger.info(f"Stored local upload ({written} bytes)", extra={"object_path": relative_path})
        return written

    def _require_local(self, relative_path: Optional[str]) -> LocalStorageProvider:
        if not isinstance(self.provider, LocalStorageProvider):
            raise StorageConfigurationError("Local storage not enabled")
        if not relative_path:
            raise InvalidObjectPathError("Missing path")
        return self.provider
