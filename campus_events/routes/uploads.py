import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException, Query, status

from campus_events.schemas import PresignedUploadRead
from campus_events.services import UploadBroker, get_upload_broker

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])
logger = logging.getLogger(__name__)


@router.get("/presigned-url", response_model=PresignedUploadRead)
async def presigned_upload_url(
    file_name: str = Query(alias="fileName", min_length=1),
    file_type: str = Query(alias="fileType", min_length=1),
    broker: UploadBroker = Depends(get_upload_broker),
) -> PresignedUploadRead:
    """Step one of the image upload: the client PUTs the file to ``uploadUrl``
    itself and then stores ``publicUrl`` as the event's image."""

    try:
        upload = broker.presign_upload(file_name, file_type)
    except (BotoCoreError, ClientError):
        logger.error("Failed to generate presigned URL for %s", file_name, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate upload URL")
    return PresignedUploadRead(
        upload_url=upload.upload_url,
        public_url=upload.public_url,
        key=upload.key,
    )
