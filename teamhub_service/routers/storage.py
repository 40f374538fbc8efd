import io

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ..dependencies import get_storage
from ..storage import ObjectStorage

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/{bucket}/{path:path}")
async def get_object(bucket: str, path: str, storage: ObjectStorage = Depends(get_storage)):
    obj = await storage.get(bucket, path)
    if obj is None or not obj.data:
        raise HTTPException(status_code=404, detail="Object not found")
    return StreamingResponse(io.BytesIO(obj.data), media_type=obj.content_type or "application/octet-stream")
