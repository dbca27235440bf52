from mimetypes import guess_type

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, Response

from ..storage import get_storage
from ..storage.local_provider import LocalStorageProvider
from ..storage.provider import BUCKETS, StorageProvider


router = APIRouter(prefix="/storage/v1/object/public", tags=["storage"])


@router.get("/{bucket}/{key:path}")
def serve_object(bucket: str, key: str, storage: StorageProvider = Depends(get_storage)):
    """Public objects. Only reached for local storage; blob URLs point at Azure directly."""
    if bucket not in BUCKETS:
        raise HTTPException(status_code=404, detail="Not found")
    content_type = guess_type(key)[0] or "application/octet-stream"

    if isinstance(storage, LocalStorageProvider):
        path = storage._get_path(bucket, key)
        # Ensure the file is within the storage directory
        if not str(path.resolve()).startswith(str(storage.base_dir.resolve())):
            raise HTTPException(status_code=403, detail="Access denied")
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(path=str(path), media_type=content_type)

    data = storage.read(bucket, key)
    if data is None:
        raise HTTPException(status_code=404, detail="Not found")
    return Response(content=data, media_type=content_type)
