import io
import logging
import re
import uuid
from typing import Optional

import boto3

from app.core.config import settings

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _safe_filename(filename: str) -> str:
    name = re.sub(r"[^A-Za-z0-9._-]", "_", filename or "").strip("._")
    return name or "document"


class BlobStorage:
    """S3 bucket holding uploaded documents under public URLs"""

    def __init__(self, prefix: str = "assignments"):
        self.prefix = prefix.strip("/")
        self.s3_client = None
        if settings.AWS_ACCESS_KEY and settings.AWS_SECRET_KEY:
            self.s3_client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY,
                aws_secret_access_key=settings.AWS_SECRET_KEY,
                region_name=settings.AWS_REGION,
            )

    def _check_config(self) -> None:
        if not settings.S3_BUCKET:
            raise ValueError(
                "S3_BUCKET environment variable is not configured. "
                "Please set S3_BUCKET in your environment variables."
            )
        if not self.s3_client:
            raise ValueError(
                "AWS credentials are not configured. "
                "Please set AWS_ACCESS_KEY and AWS_SECRET_KEY in your environment variables."
            )

    def public_url(self, key: str) -> str:
        return (
            f"https://{settings.S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"
        )

    def upload(
        self, filename: str, content: bytes, content_type: Optional[str] = None
    ) -> str:
        """Upload `content` under a unique key and return its public URL"""
        self._check_config()
        if not content:
            raise ValueError("Uploaded file is empty")

        key = f"{self.prefix}/{uuid.uuid4().hex}-{_safe_filename(filename)}"
        try:
            self.s3_client.upload_fileobj(
                io.BytesIO(content),
                settings.S3_BUCKET,
                key,
                ExtraArgs={"ContentType": content_type or "application/octet-stream"},
            )
        except Exception as e:
            raise ValueError(f"Failed to upload file to S3: {str(e)}")

        logger.info(f"✅ File uploaded to S3: s3://{settings.S3_BUCKET}/{key}")
        return self.public_url(key)
