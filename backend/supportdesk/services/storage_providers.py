"""
Storage Providers - Signed-URL upload and streamed download per backend

Every backend implements the same capability:
- get_upload_url(path, content_type): time-limited URL the client PUTs to
- get_file(path): StorageFile with a chunk iterator, ObjectNotFoundError if absent
- path_from_url(url): recovers the relative path from a URL this backend issued

The relative path is the object's identity across backends.
"""
import mimetypes
import os
import tempfile
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, Optional, Type
from urllib.parse import parse_qs, quote, unquote, urlparse

import boto3
import httpx
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, generate_blob_sas

from ..config.settings import Settings
from ..domain.models import StorageFile
from ..domain.enums import StorageProviderType
from ..domain.errors import (
    InvalidObjectPathError, ObjectNotFoundError, StorageConfigurationError, StorageError
)
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
LOCAL_UPLOAD_ROUTE = "/api/v1/storage/upload/local"


def validate_relative_path(path: str) -> str:
    """
    Reject paths that cannot be a storage key

    Raises:
        InvalidObjectPathError: Empty, absolute, or containing empty/dot segments
    """
    if not path or not isinstance(path, str):
        raise InvalidObjectPathError("Object path is empty")
    if path.startswith("/") or "\\" in path or "\x00" in path:
        raise InvalidObjectPathError("Object path must be relative", details={"path": path})
    for segment in path.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidObjectPathError("Object path contains an invalid segment", details={"path": path})
    return path


def _iter_file(file_path: Path, chunk_size: int) -> Iterator[bytes]:
    with open(file_path, "rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            yield chunk


class StorageProvider:
    """Base class for object storage backends"""

    provider_type: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.ttl = timedelta(seconds=settings.storage_signed_url_ttl_seconds)
        self.chunk_size = settings.storage_chunk_size

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        raise NotImplementedError

    def get_file(self, relative_path: str) -> StorageFile:
        raise NotImplementedError

    def path_from_url(self, url: str) -> Optional[str]:
        raise NotImplementedError


# =============================================================================
# Local filesystem
# =============================================================================

class LocalStorageProvider(StorageProvider):
    """
    Files under a local root directory

    There is no signing authority, so the upload URL points back at this
    API's own PUT endpoint with the path in the query string.
    """

    provider_type = StorageProviderType.LOCAL.value

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.root = Path(settings.storage_local_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.app_url = settings.app_url.rstrip("/")

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        validate_relative_path(relative_path)
        return f"{self.app_url}{LOCAL_UPLOAD_ROUTE}?path={quote(relative_path, safe='')}"

    def path_from_url(self, url: str) -> Optional[str]:
        parsed = urlparse(url)
        if not parsed.path.endswith(LOCAL_UPLOAD_ROUTE):
            return None
        values = parse_qs(parsed.query).get("path")
        return values[0] if values else None

    def get_file(self, relative_path: str) -> StorageFile:
        full_path = self._resolve(relative_path)
        if not full_path.is_file():
            raise ObjectNotFoundError(f"Object {relative_path} not found", details={"path": relative_path})

        content_type, _ = mimetypes.guess_type(full_path.name)
        return StorageFile(
            stream=_iter_file(full_path, self.chunk_size),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            content_length=full_path.stat().st_size
        )

    @contextmanager
    def open_writer(self, relative_path: str) -> Iterator[BinaryIO]:
        """
        Writable handle for an upload body

        The file only appears at its final path once the block exits
        without error; a failed upload leaves nothing behind.
        """
        full_path = self._resolve(relative_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as handle:
                yield handle
            os.replace(tmp_name, full_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    def save_stream(self, relative_path: str, chunks: Iterable[bytes]) -> int:
        """
        Write an upload body to disk chunk by chunk

        Returns:
            Number of bytes written
        """
        written = 0
        with self.open_writer(relative_path) as handle:
            for chunk in chunks:
                handle.write(chunk)
                written += len(chunk)

        logger.info(f"Stored local upload ({written} bytes)", extra={"object_path": relative_path})
        return written

    def _resolve(self, relative_path: str) -> Path:
        validate_relative_path(relative_path)
        full_path = (self.root / relative_path).resolve()
        if full_path != self.root and self.root not in full_path.parents:
            raise InvalidObjectPathError("Object path escapes the storage root", details={"path": relative_path})
        return full_path


# =============================================================================
# Amazon S3 (and S3-compatible endpoints)
# =============================================================================

class S3StorageProvider(StorageProvider):
    """Presigned PUT URLs and streamed reads via boto3"""

    provider_type = StorageProviderType.S3.value

    def __init__(self, settings: Settings, client=None):
        super().__init__(settings)
        self.bucket = settings.s3_bucket
        # Custom endpoints (MinIO, Spaces) need path-style addressing
        self.path_style = bool(settings.s3_endpoint_url)

        if not self.bucket:
            raise StorageConfigurationError("S3 bucket is not configured")

        if client is None:
            if not (settings.s3_access_key_id and settings.s3_secret_access_key):
                raise StorageConfigurationError("S3 credentials are not configured")
            session = boto3.session.Session(
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
                region_name=settings.s3_region,
            )
            client = session.client(
                "s3",
                endpoint_url=settings.s3_endpoint_url,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "path" if self.path_style else "virtual"},
                ),
            )
        self.s3 = client

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        validate_relative_path(relative_path)
        return self._presign(
            "put_object",
            {"Bucket": self.bucket, "Key": relative_path, "ContentType": content_type or DEFAULT_CONTENT_TYPE}
        )

    def path_from_url(self, url: str) -> Optional[str]:
        parsed = urlparse(url)
        key = unquote(parsed.path).lstrip("/")
        virtual_host = (parsed.hostname or "").startswith(f"{self.bucket}.")
        if not virtual_host and key.startswith(f"{self.bucket}/"):
            key = key[len(self.bucket) + 1:]
        return key or None

    def get_file(self, relative_path: str) -> StorageFile:
        validate_relative_path(relative_path)
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=relative_path)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise ObjectNotFoundError(f"Object {relative_path} not found", details={"path": relative_path})
            raise StorageError(f"S3 error: {code}", details={"path": relative_path})
        except BotoCoreError as e:
            raise StorageError(f"S3 error: {e}", details={"path": relative_path})

        return StorageFile(
            stream=response["Body"].iter_chunks(self.chunk_size),
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength")
        )

    def _presign(self, operation: str, params: Dict[str, str]) -> str:
        try:
            return self.s3.generate_presigned_url(
                operation,
                Params=params,
                ExpiresIn=int(self.ttl.total_seconds()),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to sign S3 URL: {e}", details={"path": params.get("Key")})


# =============================================================================
# Azure Blob Storage
# =============================================================================

class AzureBlobStorageProvider(StorageProvider):
    """SAS-signed blob URLs via azure-storage-blob"""

    provider_type = StorageProviderType.AZURE.value

    def __init__(self, settings: Settings, service_client: Optional[BlobServiceClient] = None):
        super().__init__(settings)
        self.account_name = settings.azure_storage_account_name
        self.account_key = settings.azure_storage_account_key
        self.container = settings.azure_storage_container

        if not (self.account_name and self.account_key and self.container):
            raise StorageConfigurationError("Azure storage account, key or container is not configured")

        # Emulators (Azurite) put the account name in the URL path
        self.account_url = (
            settings.azure_storage_account_url or f"https://{self.account_name}.blob.core.windows.net"
        ).rstrip("/")
        self.service = service_client or BlobServiceClient(
            account_url=self.account_url,
            credential={"account_name": self.account_name, "account_key": self.account_key},
        )

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        validate_relative_path(relative_path)
        return self._signed_url(relative_path, BlobSasPermissions(create=True, write=True))

    def path_from_url(self, url: str) -> Optional[str]:
        segments = unquote(urlparse(url).path).lstrip("/").split("/")
        account_path = urlparse(self.account_url).path.strip("/")
        if account_path and segments[:1] == [account_path]:
            segments = segments[1:]
        if len(segments) < 2 or segments[0] != self.container:
            return None
        return "/".join(segments[1:]) or None

    def get_file(self, relative_path: str) -> StorageFile:
        validate_relative_path(relative_path)
        try:
            blob = self.service.get_blob_client(container=self.container, blob=relative_path)
            downloader = blob.download_blob()
        except ResourceNotFoundError:
            raise ObjectNotFoundError(f"Object {relative_path} not found", details={"path": relative_path})
        except AzureError as e:
            raise StorageError(f"Azure storage error: {e}", details={"path": relative_path})

        return StorageFile(
            stream=downloader.chunks(),
            content_type=downloader.properties.content_settings.content_type,
            content_length=downloader.size
        )

    def _signed_url(self, relative_path: str, permission: BlobSasPermissions) -> str:
        sas = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.container,
            blob_name=relative_path,
            account_key=self.account_key,
            permission=permission,
            expiry=utc_now() + self.ttl,
        )
        return f"{self.account_url}/{self.container}/{quote(relative_path, safe='/~')}?{sas}"


# =============================================================================
# Hosted identity (sidecar-brokered credentials)
# =============================================================================

class HostedIdentityStorageProvider(StorageProvider):
    """
    Object storage for the hosted sandbox runtime

    A local sidecar holds the workload identity. Each signed URL request
    first exchanges for a short-lived access token at /credential, then
    asks /object-storage/signed-object-url to sign the object.
    """

    provider_type = StorageProviderType.HOSTED.value

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        super().__init__(settings)
        self.bucket = settings.hosted_bucket_name
        self.private_dir = settings.hosted_private_dir.strip("/")
        if not self.bucket:
            raise StorageConfigurationError("Hosted storage bucket is not configured")

        self.client = httpx.Client(
            base_url=settings.hosted_sidecar_url,
            timeout=10.0,
            transport=transport
        )

    def get_upload_url(self, relative_path: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        validate_relative_path(relative_path)
        return self._signed_url(relative_path, "PUT")

    def path_from_url(self, url: str) -> Optional[str]:
        segments = unquote(urlparse(url).path).lstrip("/").split("/")
        if len(segments) < 2 or segments[0] != self.bucket:
            return None
        object_name = "/".join(segments[1:])
        prefix = f"{self.private_dir}/" if self.private_dir else ""
        if not object_name.startswith(prefix):
            return None
        return object_name[len(prefix):] or None

    def get_file(self, relative_path: str) -> StorageFile:
        validate_relative_path(relative_path)
        signed_url = self._signed_url(relative_path, "GET")

        try:
            response = self.client.send(self.client.build_request("GET", signed_url), stream=True)
        except httpx.HTTPError as e:
            raise StorageError(f"Hosted storage download failed: {e}", details={"path": relative_path})

        if response.status_code == 404:
            response.close()
            raise ObjectNotFoundError(f"Object {relative_path} not found", details={"path": relative_path})
        if response.status_code >= 400:
            response.close()
            raise StorageError(
                f"Hosted storage download failed: {response.status_code}",
                details={"path": relative_path}
            )

        content_length = response.headers.get("Content-Length")
        return StorageFile(
            stream=self._iter_response(response),
            content_type=response.headers.get("Content-Type"),
            content_length=int(content_length) if content_length else None
        )

    def _iter_response(self, response: httpx.Response) -> Iterator[bytes]:
        try:
            for chunk in response.iter_bytes(self.chunk_size):
                yield chunk
        finally:
            response.close()

    def _object_name(self, relative_path: str) -> str:
        if self.private_dir:
            return f"{self.private_dir}/{relative_path}"
        return relative_path

    def _signed_url(self, relative_path: str, method: str) -> str:
        try:
            credential = self.client.get("/credential")
            credential.raise_for_status()
            token = credential.json()["access_token"]

            response = self.client.post(
                "/object-storage/signed-object-url",
                headers={"Authorization": f"Bearer {token}"},
                json={
                    "bucket_name": self.bucket,
                    "object_name": self._object_name(relative_path),
                    "method": method,
                    "expires_at": (utc_now() + self.ttl).isoformat(),
                },
            )
            response.raise_for_status()
            return response.json()["signed_url"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise StorageError(f"Failed to sign hosted storage URL: {e}", details={"path": relative_path})


STORAGE_PROVIDER_CLASSES: Dict[str, Type[StorageProvider]] = {
    StorageProviderType.LOCAL.value: LocalStorageProvider,
    StorageProviderType.S3.value: S3StorageProvider,
    StorageProviderType.AZURE.value: AzureBlobStorageProvider,
    StorageProviderType.HOSTED.value: HostedIdentityStorageProvider,
}


def build_storage_provider(settings: Settings) -> StorageProvider:
    """
    Construct the configured backend

    Raises:
        StorageConfigurationError: Unknown backend or missing credentials
    """
    provider_cls = STORAGE_PROVIDER_CLASSES.get(settings.storage_provider.lower())
    if provider_cls is None:
        raise StorageConfigurationError(
            f"Unsupported storage provider: {settings.storage_provider}",
            details={"supported": sorted(STORAGE_PROVIDER_CLASSES.keys())}
        )
    provider = provider_cls(settings)
    logger.info(f"Object storage backend: {provider.provider_type}", extra={"provider": provider.provider_type})
    return provider
