import base64
import io
import json
import threading
from contextlib import contextmanager
from urllib.parse import urlparse

import httpx
import pytest
from azure.core.exceptions import ResourceNotFoundError
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from supportdesk.domain.errors import (
    InvalidObjectPathError, ObjectNotFoundError, StorageConfigurationError, StorageError
)
from supportdesk.services.object_storage_service import ObjectStorageService
from supportdesk.services.storage_providers import (
    AzureBlobStorageProvider, HostedIdentityStorageProvider, LocalStorageProvider,
    S3StorageProvider, build_storage_provider, validate_relative_path
)

AZURE_KEY = base64.b64encode(b"k" * 32).decode()


def _read(stored) -> bytes:
    return b"".join(stored.stream)


# =============================================================================
# Path validation
# =============================================================================

@pytest.mark.parametrize("path", ["", "/etc/passwd", "uploads/../secret", "uploads//x", "./x", "a\\b"])
def test_invalid_relative_paths_are_rejected(path):
    with pytest.raises(InvalidObjectPathError):
        validate_relative_path(path)


def test_valid_relative_path_is_returned_unchanged():
    assert validate_relative_path("uploads/2026/report.pdf") == "uploads/2026/report.pdf"


# =============================================================================
# Local filesystem
# =============================================================================

def test_local_upload_url_round_trips(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))
    url = service.get_upload_url("uploads/my file.pdf")

    assert url.startswith("http://testserver/api/v1/storage/upload/local?path=")
    assert service.normalize_object_entity_path(url) == "uploads/my file.pdf"


def test_fresh_upload_urls_use_uploads_prefix(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))
    path = service.normalize_object_entity_path(service.get_object_entity_upload_url())

    assert path.startswith("uploads/")
    assert len(path) > len("uploads/")


def test_local_upload_then_download(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))

    assert service.handle_local_upload("uploads/note.txt", [b"hello ", b"world"]) == 11
    stored = service.get_object_entity_file("/objects/uploads/note.txt")

    assert _read(stored) == b"hello world"
    assert stored.content_type == "text/plain"
    assert stored.content_length == 11


@pytest.mark.asyncio
async def test_local_upload_from_async_stream(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))

    async def body():
        yield b"chunk-1,"
        yield b"chunk-2"

    assert await service.receive_local_upload("uploads/async.bin", body()) == 15
    assert _read(service.get_object_entity_file("uploads/async.bin")) == b"chunk-1,chunk-2"


@pytest.mark.asyncio
async def test_async_upload_writes_off_the_event_loop(settings, monkeypatch):
    provider = LocalStorageProvider(settings)
    open_writer = provider.open_writer
    write_threads = []

    class ThreadRecordingHandle:
        def __init__(self, handle):
            self.handle = handle

        def write(self, chunk):
            write_threads.append(threading.get_ident())
            return self.handle.write(chunk)

    @contextmanager
    def recording_writer(relative_path):
        with open_writer(relative_path) as handle:
            yield ThreadRecordingHandle(handle)

    monkeypatch.setattr(provider, "open_writer", recording_writer)

    async def body():
        yield b"a"
        yield b"b"

    assert await ObjectStorageService(provider).receive_local_upload("uploads/threads.bin", body()) == 2
    assert len(write_threads) == 2
    assert threading.get_ident() not in write_threads
    assert _read(provider.get_file("uploads/threads.bin")) == b"ab"


def test_failed_local_upload_leaves_no_file(settings, tmp_path):
    provider = LocalStorageProvider(settings)

    def broken_body():
        yield b"partial"
        raise ConnectionResetError("client went away")

    with pytest.raises(ConnectionResetError):
        provider.save_stream("uploads/broken.bin", broken_body())

    with pytest.raises(ObjectNotFoundError):
        provider.get_file("uploads/broken.bin")
    assert list((tmp_path / "uploads" / "uploads").iterdir()) == []


def test_local_traversal_and_missing_objects(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))

    with pytest.raises(InvalidObjectPathError):
        service.handle_local_upload("../outside.txt", [b"x"])
    with pytest.raises(InvalidObjectPathError):
        service.handle_local_upload(None, [b"x"])
    with pytest.raises(ObjectNotFoundError):
        service.get_object_entity_file("uploads/nothing-here")


def test_normalize_plain_paths_and_foreign_urls(settings):
    service = ObjectStorageService(LocalStorageProvider(settings))

    assert service.normalize_object_entity_path("/objects/uploads/a") == "uploads/a"
    assert service.normalize_object_entity_path("uploads/a") == "uploads/a"
    assert service.normalize_object_entity_path("https://cdn.example.com/uploads/a") == "uploads/a"
    with pytest.raises(InvalidObjectPathError):
        service.normalize_object_entity_path("")


# =============================================================================
# S3
# =============================================================================

def _s3_settings(settings, **overrides):
    values = {
        "storage_provider": "s3",
        "s3_bucket": "ticket-files",
        "s3_access_key_id": "AKIAEXAMPLE",
        "s3_secret_access_key": "secret",
    }
    values.update(overrides)
    return settings.model_copy(update=values)


def test_s3_presigned_url_round_trips_virtual_host(settings):
    provider = S3StorageProvider(_s3_settings(settings))
    url = provider.get_upload_url("uploads/abc", "image/png")

    assert urlparse(url).hostname.startswith("ticket-files.")
    assert "X-Amz-Signature" in url
    assert ObjectStorageService(provider).normalize_object_entity_path(url) == "uploads/abc"


def test_s3_presigned_url_round_trips_custom_endpoint(settings):
    provider = S3StorageProvider(_s3_settings(settings, s3_endpoint_url="http://localhost:9000"))
    url = provider.get_upload_url("uploads/abc")

    assert url.startswith("http://localhost:9000/ticket-files/uploads/abc?")
    assert provider.path_from_url(url) == "uploads/abc"


def test_s3_requires_bucket_and_credentials(settings):
    with pytest.raises(StorageConfigurationError):
        S3StorageProvider(_s3_settings(settings, s3_bucket=""))
    with pytest.raises(StorageConfigurationError):
        S3StorageProvider(_s3_settings(settings, s3_secret_access_key=""))


def test_s3_get_file_streams_body(settings):
    class FakeS3:
        def get_object(self, Bucket, Key):
            data = b"pdf-bytes"
            return {"Body": StreamingBody(io.BytesIO(data), len(data)), "ContentType": "application/pdf",
                    "ContentLength": len(data)}

    stored = S3StorageProvider(_s3_settings(settings), client=FakeS3()).get_file("uploads/abc")

    assert _read(stored) == b"pdf-bytes"
    assert stored.content_type == "application/pdf"


def test_s3_missing_key_maps_to_not_found(settings):
    class FakeS3:
        def get_object(self, Bucket, Key):
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")

    with pytest.raises(ObjectNotFoundError):
        S3StorageProvider(_s3_settings(settings), client=FakeS3()).get_file("uploads/abc")


def test_s3_access_denied_maps_to_storage_error(settings):
    class FakeS3:
        def get_object(self, Bucket, Key):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject")

    with pytest.raises(StorageError):
        S3StorageProvider(_s3_settings(settings), client=FakeS3()).get_file("uploads/abc")


# =============================================================================
# Azure Blob
# =============================================================================

def _azure_settings(settings, **overrides):
    values = {
        "storage_provider": "azure",
        "azure_storage_account_name": "supportfiles",
        "azure_storage_account_key": AZURE_KEY,
        "azure_storage_container": "attachments",
    }
    values.update(overrides)
    return settings.model_copy(update=values)


def test_azure_sas_url_round_trips(settings):
    provider = AzureBlobStorageProvider(_azure_settings(settings))
    url = provider.get_upload_url("uploads/my file.pdf")

    assert url.startswith("https://supportfiles.blob.core.windows.net/attachments/uploads/my%20file.pdf?")
    assert "sig=" in url
    assert provider.path_from_url(url) == "uploads/my file.pdf"


def test_azure_emulator_url_round_trips(settings):
    provider = AzureBlobStorageProvider(_azure_settings(
        settings, azure_storage_account_url="http://127.0.0.1:10000/supportfiles"
    ))
    url = provider.get_upload_url("uploads/abc")

    assert url.startswith("http://127.0.0.1:10000/supportfiles/attachments/uploads/abc?")
    assert provider.path_from_url(url) == "uploads/abc"


def test_azure_foreign_container_is_not_recognised(settings):
    provider = AzureBlobStorageProvider(_azure_settings(settings))
    assert provider.path_from_url("https://supportfiles.blob.core.windows.net/other/uploads/abc") is None


def test_azure_missing_blob_maps_to_not_found(settings):
    class FakeBlob:
        def download_blob(self):
            raise ResourceNotFoundError("The specified blob does not exist.")

    class FakeService:
        def get_blob_client(self, container, blob):
            return FakeBlob()

    provider = AzureBlobStorageProvider(_azure_settings(settings), service_client=FakeService())
    with pytest.raises(ObjectNotFoundError):
        provider.get_file("uploads/abc")


def test_azure_requires_account_settings(settings):
    with pytest.raises(StorageConfigurationError):
        AzureBlobStorageProvider(_azure_settings(settings, azure_storage_container=""))


# =============================================================================
# Hosted identity
# =============================================================================

def _hosted_transport(objects):
    def handler(request):
        if request.url.path == "/credential":
            return httpx.Response(200, json={"access_token": "token-1"})
        if request.url.path == "/object-storage/signed-object-url":
            assert request.headers["Authorization"] == "Bearer token-1"
            payload = json.loads(request.content)
            return httpx.Response(200, json={
                "signed_url": f"https://storage.example.com/{payload['bucket_name']}/{payload['object_name']}?sig=1"
            })
        if request.url.host == "storage.example.com":
            key = request.url.path
            if key not in objects:
                return httpx.Response(404)
            return httpx.Response(200, content=objects[key], headers={"Content-Type": "text/plain"})
        return httpx.Response(500)

    return httpx.MockTransport(handler)


def _hosted_settings(settings):
    return settings.model_copy(update={"storage_provider": "hosted", "hosted_bucket_name": "repl-bucket"})


def test_hosted_signed_url_round_trips(settings):
    provider = HostedIdentityStorageProvider(_hosted_settings(settings), transport=_hosted_transport({}))
    url = provider.get_upload_url("uploads/abc")

    assert url.startswith("https://storage.example.com/repl-bucket/.private/uploads/abc")
    assert provider.path_from_url(url) == "uploads/abc"


def test_hosted_get_file_streams_and_maps_404(settings):
    objects = {"/repl-bucket/.private/uploads/abc": b"hosted-bytes"}
    provider = HostedIdentityStorageProvider(_hosted_settings(settings), transport=_hosted_transport(objects))

    assert _read(provider.get_file("uploads/abc")) == b"hosted-bytes"
    with pytest.raises(ObjectNotFoundError):
        provider.get_file("uploads/missing")


# =============================================================================
# Backend selection
# =============================================================================

def test_build_storage_provider_selects_backend(settings):
    assert isinstance(build_storage_provider(settings), LocalStorageProvider)
    assert isinstance(build_storage_provider(_s3_settings(settings)), S3StorageProvider)


def test_build_storage_provider_rejects_unknown_backend(settings):
    with pytest.raises(StorageConfigurationError):
        build_storage_provider(settings.model_copy(update={"storage_provider": "floppy"}))


def test_local_upload_requires_local_backend(settings):
    service = ObjectStorageService(S3StorageProvider(_s3_settings(settings)))
    with pytest.raises(StorageConfigurationError):
        service.handle_local_upload("uploads/abc", [b"x"])
