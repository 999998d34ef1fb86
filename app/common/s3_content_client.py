import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.logger.logger import logger

MAX_STORED_URL_LENGTH = 1000


def normalize_download_url(download_url: Optional[str]) -> Optional[str]:
    """Keep the object path of S3 URLs so signed query strings are never stored."""
    if not download_url or not download_url.startswith("http"):
        return download_url

    try:
        parsed = urlparse(download_url)
    except ValueError:
        return download_url[:MAX_STORED_URL_LENGTH]

    if parsed.netloc and "s3" in parsed.netloc:
        path = "/".join(part for part in parsed.path.split("/") if part)
        if path:
            return path

    return download_url[:MAX_STORED_URL_LENGTH]


class S3ContentClient:
    """Read-only access to the preset bucket: folder listing, manifests, signed links."""

    s3_instance = None
    instance_type = "s3"

    def __init__(self, bucket_name: Optional[str] = None, s3_instance=None):
        self.bucket_name = bucket_name or settings.PRESET_S3_BUCKET_NAME
        self.s3_instance = s3_instance or boto3.client(
            self.instance_type,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_DEFAULT_REGION,
        )

    def list_folders(self, prefix: str) -> List[str]:
        """Return the "folder" prefixes directly below ``prefix``."""
        paginator = self.s3_instance.get_paginator("list_objects_v2")
        folders: List[str] = []
        for page in paginator.paginate(
            Bucket=self.bucket_name, Prefix=prefix, Delimiter="/"
        ):
            for common_prefix in page.get("CommonPrefixes", []):
                folder = common_prefix.get("Prefix", "")
                if folder.startswith(prefix) and folder.endswith("/"):
                    folders.append(folder)
        return folders

    def read_json(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            obj = self.s3_instance.get_object(Bucket=self.bucket_name, Key=key)
            return json.loads(obj["Body"].read())
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.warning(f"Could not read {key} from {self.bucket_name}: {e}")
            return None

    def generate_download_url(
        self, key: str, expires_in: int = settings.PRESIGNED_URL_EXPIRE_SECONDS
    ) -> str:
        return self.s3_instance.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=expires_in,
        )
