from tasktrack.storage.blob import (
    BlobInfo,
    BlobStore,
    BlobStoreError,
    LocalBlobStore,
    validate_image,
)

__all__ = [
    "BlobInfo",
    "BlobStore",
    "BlobStoreError",
    "LocalBlobStore",
    "validate_image",
]
