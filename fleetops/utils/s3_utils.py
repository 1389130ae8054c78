### fleetops/utils/s3_utils.py

# Standard library imports
import os
import uuid
from typing import BinaryIO, Optional

# Third party imports
import boto3
from botocore.exceptions import ClientError

# Local imports
from fleetops.core.config import settings
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class S3Utils:
    """Utility class for storing uploaded attachments in s3"""

    def __init__(self):
        """Initialize S3 client with AWS credentials"""
        self.s3_client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )
        self.bucket_name = settings.s3_bucket_name

    def build_key(self, prefix: str, filename: str) -> str:
        """Build a collision free object key, keeping the original extension."""
        extension = os.path.splitext(filename or "")[1].lower()
        return f"{prefix.rstrip('/')}/{uuid.uuid4().hex}{extension}"

    def upload_file(self, file_obj: BinaryIO, key: str, content_type: Optional[str] = None) -> bool:
        """
        Upload a file to S3

        Args:
            file_obj: File object to upload
            key: S3 key (path) where the file will be stored
            content_type: Optional content type of the file

        Returns:
            bool: True if upload was successful, False otherwise
        """
        try:
            extra_args = {}
            file_extension = os.path.splitext(key)[1].lower()
            if file_extension in CONTENT_TYPES:
                extra_args["ContentType"] = CONTENT_TYPES[file_extension]
            if content_type:
                extra_args["ContentType"] = content_type

            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                key,
                ExtraArgs=extra_args,
            )
            logger.info("Uploaded file to S3", key=key)
            return True
        except ClientError as e:
            logger.error("Error uploading file to S3", key=key, error=str(e))
            return False


s3_utils = S3Utils()
