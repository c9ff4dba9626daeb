"""Service layer utilities for external integrations."""

from .storage import PresignedUpload, UploadBroker, get_upload_broker

__all__ = [
    "PresignedUpload",
    "UploadBroker",
    "get_upload_broker",
]
