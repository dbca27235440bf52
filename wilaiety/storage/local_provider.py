"""
Local filesystem storage provider for development.
Objects live under ``<base_dir>/<bucket>/<key>`` and are served by the
``/storage/v1/object/public`` route.
"""
from pathlib import Path
from typing import BinaryIO, Optional, Union
from urllib.parse import quote

from ..config import settings
from .provider import StorageProvider, StorageConflict


class LocalStorageProvider(StorageProvider):
    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.storage_local_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, bucket: str, key: str) -> Path:
        clean_key = key.replace("\\", "/").replace("..", "").lstrip("/")
        clean_bucket = bucket.replace("..", "").strip("/")
        return self.base_dir / clean_bucket / clean_key

    def upload(self, bucket: str, key: str, data: Union[bytes, BinaryIO], content_type: str, upsert: bool = True) -> str:
        path = self._get_path(bucket, key)
        if path.exists() and not upsert:
            raise StorageConflict(f"{bucket}/{key}")
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            if hasattr(data, "read"):
                f.write(data.read())
            else:
                f.write(data)
        return key.lstrip("/")

    def public_url(self, bucket: str, key: str) -> str:
        return f"{settings.public_base_url}/storage/v1/object/public/{quote(bucket)}/{quote(key.lstrip('/'))}"

    def exists(self, bucket: str, key: str) -> bool:
        return self._get_path(bucket, key).exists()

    def read(self, bucket: str, key: str) -> Optional[bytes]:
        path = self._get_path(bucket, key)
        if not path.exists():
            return None
        with open(path, "rb") as f:
            return f.read()

    def delete(self, bucket: str, key: str) -> None:
        path = self._get_path(bucket, key)
        if path.exists():
            path.unlink()
