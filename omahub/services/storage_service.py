"""
Brand/product image lookups in S3-compatible object storage (MinIO, AWS S3,
DigitalOcean Spaces).

Image columns hold either an object key (``brands/<id>/cover.jpg``) or, for
older rows, the full public URL of an object in our bucket.
"""
import logging
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError
from flask import current_app

logger = logging.getLogger(__name__)


class StorageService:
    """Read-only view of the image bucket."""

    def __init__(self, client=None):
        config = current_app.config
        self.bucket = config['S3_BUCKET']
        self.public_prefix = f"{config['S3_PUBLIC_URL'].rstrip('/')}/{self.bucket}/"
        self.client = client or boto3.client(
            's3',
            endpoint_url=config['S3_ENDPOINT'],
            aws_access_key_id=config['S3_ACCESS_KEY'],
            aws_secret_access_key=config['S3_SECRET_KEY'],
            region_name=config['S3_REGION'],
            config=BotoConfig(signature_version='s3v4')
        )

    def object_key(self, image: str) -> Optional[str]:
        """Bucket key for an image column value; None for URLs outside the bucket."""
        if not image:
            return None
        if image.startswith(self.public_prefix):
            return image[len(self.public_prefix):]
        if image.startswith(('http://', 'https://')):
            return None
        return image.lstrip('/')

    def file_exists(self, key: str) -> bool:
        """HEAD the object; any client error (404, 403) counts as missing."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            logger.info(f"[STORAGE] {self.bucket}/{key} not available ({code})")
            return False
        return True


_storage_service = None


def get_storage_service() -> StorageService:
    """Process-wide StorageService (needs an app context on first use)."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
