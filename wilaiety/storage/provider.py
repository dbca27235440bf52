from typing import BinaryIO, Optional, Union

FACILITY_IMAGES = "facility-images"
LICENSE_IMAGES = "license-images"
AVATARS = "avatars"
BUCKETS = (FACILITY_IMAGES, LICENSE_IMAGES, AVATARS)


class StorageConflict(Exception):
    """Object already exists and the upload did not ask to overwrite it."""


class StorageProvider:
    def upload(self, bucket: str, key: str, data: Union[bytes, BinaryIO], content_type: str, upsert: bool = True) -> str:
        raise NotImplementedError

    def public_url(self, bucket: str, key: str) -> str:
        raise NotImplementedError

    def exists(self, bucket: str, key: str) -> bool:
        raise NotImplementedError

    def read(self, bucket: str, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def delete(self, bucket: str, key: str) -> None:
        raise NotImplementedError
