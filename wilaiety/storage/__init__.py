from ..config import settings
from .provider import StorageProvider


def get_storage() -> StorageProvider:
    """
    Storage provider for the current configuration.
    Blob storage when selected and configured, local filesystem otherwise.
    """
    if settings.storage_provider == "blob" and settings.azure_blob_connection and settings.azure_blob_container:
        from .blob_provider import BlobStorageProvider
        return BlobStorageProvider()
    from .local_provider import LocalStorageProvider
    return LocalStorageProvider()
