"""Image upload API.

Learn: Uploads go through whichever BlobStore the app was built with
(app.state.blob_store). The route validates type and size, hands the bytes
over and returns what the store reports. Attaching the URL to a task is
POST /tasks/{id}/image in tasks.py, which reuses store_image().
"""

from fastapi import APIRouter, File, Request, UploadFile

from tasktrack.errors import ServerError
from tasktrack.schemas.common import Envelope
from tasktrack.storage import BlobInfo, BlobStore, BlobStoreError, validate_image

router = APIRouter()

UPLOAD_FOLDER = "task-images"


async def store_image(request: Request, image: UploadFile) -> BlobInfo:
    settings = request.app.state.settings
    blob_store: BlobStore = request.app.state.blob_store

    data = await image.read(settings.upload_max_bytes + 1)
    validate_image(image.content_type, len(data), settings.upload_max_bytes)
    try:
        return await blob_store.put(
            data,
            folder=UPLOAD_FOLDER,
            filename=image.filename or "upload",
            content_type=image.content_type,
        )
    except BlobStoreError as e:
        raise ServerError("Error uploading the image") from e


@router.post("/upload", response_model=Envelope[dict], response_model_exclude_unset=True)
async def upload_image(
    request: Request,
    image: UploadFile = File(...),
):
    """Store an image and return its URL and metadata."""
    blob = await store_image(request, image)
    return Envelope(message="Image uploaded successfully", data=blob.to_dict())
