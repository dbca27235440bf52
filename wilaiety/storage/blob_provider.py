from typing import BinaryIO, Optional, Union

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from ..config import settings
from .provider import StorageProvider, StorageConflict


class BlobStorageProvider(StorageProvider):
    """All buckets share one container; the bucket is the first path segment."""

    def __init__(self) -> None:
        if not settings.azure_blob_connection or not settings.azure_blob_container:
            raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
        self._service = BlobServiceClient.from_connection_string(settings.azure_blob_connection)
        self._container = settings.azure_blob_container

    def _client(self, bucket: str, key: str):
        return self._service.get_blob_client(self._container, f"{bucket}/{key.lstrip('/')}")

    def upload(self, bucket: str, key: str, data: Union[bytes, BinaryIO], content_type: str, upsert: bool = True) -> str:
        client = self._client(bucket, key)
        try:
            client.upload_blob(
                data,
                overwrite=upsert,
                content_settings=ContentSettings(content_type=content_type, cache_control="max-age=3600"),
            )
        except ResourceExistsError as e:
            raise StorageConflict(f"{bucket}/{key}") from e
        return key.lstrip("/")

    def public_url(self, bucket: str, key: str) -> str:
        return self._client(bucket, key).url

    def exists(self, bucket: str, key: str) -> bool:
        return self._client(bucket, key).exists()

    def read(self, bucket: str, key: str) -> Optional[bytes]:
        try:
            return self._client(bucket, key).download_blob().readall()
        except ResourceNotFoundError:
            return None

    def delete(self, bucket: str, key: str) -> None:
        try:
            self._client(bucket, key).delete_blob()
        except ResourceNotFoundError:
            pass
