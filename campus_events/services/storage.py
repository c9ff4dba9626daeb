from __future__ import annotations

import os
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import boto3

# Presigned PUT URLs are valid for five minutes.
UPLOAD_URL_TTL_SECONDS = 300
UPLOAD_KEY_PREFIX = "uploads/"

_EXTENSION_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class PresignedUpload:
    upload_url: str
    public_url: str
    key: str


def extension_for(filename: str) -> str:
    """Text after the last dot of ``filename`` (the whole name when it has none)."""

    ext = filename.rsplit(".", 1)[-1]
    return _EXTENSION_RE.sub("", ext) or "bin"


def build_upload_key(filename: str) -> str:
    return f"{UPLOAD_KEY_PREFIX}{uuid.uuid4()}.{extension_for(filename)}"


class UploadBroker:
    """Issues short-lived S3 write URLs so clients upload images directly to the bucket."""

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        public_domain: Optional[str] = None,
        client: Any = None,
    ) -> None:
        bucket = bucket or os.getenv("S3_BUCKET")
        region = region or os.getenv("S3_REGION")
        public_domain = public_domain or os.getenv("CLOUDFRONT_DOMAIN")
        if not bucket:
            raise RuntimeError("S3_BUCKET must be set to issue upload URLs")
        if not public_domain:
            raise RuntimeError("CLOUDFRONT_DOMAIN must be set to issue upload URLs")

        self.bucket = bucket
        self.public_domain = public_domain.strip().rstrip("/")
        if client is None:
            if not region:
                raise RuntimeError("S3_REGION must be set to issue upload URLs")
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
            )
        self.client = client

    def public_url_for(self, key: str) -> str:
        domain = self.public_domain
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return f"{domain}/{key}"

    def presign_upload(self, filename: str, content_type: str) -> PresignedUpload:
        key = build_upload_key(filename)
        upload_url = self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=UPLOAD_URL_TTL_SECONDS,
        )
        return PresignedUpload(
            upload_url=upload_url,
            public_url=self.public_url_for(key),
            key=key,
        )


_broker: Optional[UploadBroker] = None


def get_upload_broker() -> UploadBroker:
    global _broker
    if _broker is not None:
        return _broker

    _broker = UploadBroker()
    return _broker


def reset_upload_broker() -> None:
    """Drop the cached broker so the next call re-reads the environment."""

    global _broker
    _broker = None
