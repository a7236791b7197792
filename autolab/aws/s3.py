"""S3 bucket creation, welcome-file upload and teardown.

Bucket rules:

1. Bucket name is ``<bucket_prefix>-<epoch seconds>``.
2. ``us-east-1`` takes no ``LocationConstraint``; every other region does.
3. Tags (``Name`` + project tag) and versioning are applied after creation.
4. An optional welcome file is uploaded and its URL recorded.

Teardown deletes every object *version* (versioning is on) before
``delete_bucket``.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from autolab.aws.calls import provider_call, provider_pages
from autolab.config.models import LabConfig

logger = logging.getLogger(__name__)

_NO_LOCATION_CONSTRAINT_REGION = "us-east-1"
_DELETE_BATCH = 1000


def generate_bucket_name(prefix: str, *, now: Optional[float] = None) -> str:
    """Return ``<prefix>-<epoch>``."""
    ts = int(now if now is not None else time.time())
    return f"{prefix}-{ts}"


def bucket_url(bucket_name: str) -> str:
    """Return ``s3://<bucket_name>``."""
    return f"s3://{bucket_name}"


def object_url(bucket_name: str, region: str, key: str) -> str:
    """Return the virtual-hosted HTTPS URL of *key*."""
    return f"https://{bucket_name}.s3.{region}.amazonaws.com/{key}"


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def create_bucket(s3: Any, bucket_name: str, region: str) -> None:
    logger.info("Creating S3 bucket: %s", bucket_name)
    kwargs: Dict[str, Any] = {"Bucket": bucket_name}
    if region != _NO_LOCATION_CONSTRAINT_REGION:
        kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
    provider_call(s3, "create_bucket", **kwargs)


def tag_bucket(s3: Any, cfg: LabConfig, bucket_name: str) -> None:
    provider_call(
        s3, "put_bucket_tagging",
        Bucket=bucket_name, Tagging={"TagSet": cfg.tags(bucket_name)},
    )
    logger.info("Tags added to S3 bucket")


def enable_versioning(s3: Any, bucket_name: str) -> None:
    provider_call(
        s3, "put_bucket_versioning",
        Bucket=bucket_name, VersioningConfiguration={"Status": "Enabled"},
    )
    logger.info("Versioning enabled on S3 bucket")


def allow_public_acls(s3: Any, bucket_name: str) -> None:
    """Relax block-public-access and ownership so object ACLs apply."""
    provider_call(
        s3, "put_public_access_block",
        Bucket=bucket_name,
        PublicAccessBlockConfiguration={
            "BlockPublicAcls": False,
            "IgnorePublicAcls": False,
            "BlockPublicPolicy": False,
            "RestrictPublicBuckets": False,
        },
    )
    provider_call(
        s3, "put_bucket_ownership_controls",
        Bucket=bucket_name,
        OwnershipControls={"Rules": [{"ObjectOwnership": "BucketOwnerPreferred"}]},
    )
    logger.info("Public access configured for %s", bucket_name)


def upload_welcome_file(
    s3: Any,
    bucket_name: str,
    path: Path,
    *,
    region: str,
    public_read: bool = False,
) -> str:
    """Upload *path* under its file name and return the object URL.

    Raises :class:`FileNotFoundError` if *path* does not exist.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Welcome file not found: {path}")
    key = path.name
    logger.info("Uploading %s to S3 bucket: %s", key, bucket_name)
    kwargs: Dict[str, Any] = {
        "Bucket": bucket_name,
        "Key": key,
        "Body": path.read_bytes(),
    }
    if public_read:
        kwargs["ACL"] = "public-read"
    provider_call(s3, "put_object", **kwargs)
    url = object_url(bucket_name, region, key)
    logger.info("File URL: %s", url)
    return url


# ---------------------------------------------------------------------------
# Teardown
# ---------------------------------------------------------------------------


def empty_bucket(s3: Any, bucket_name: str) -> int:
    """Delete every object version and delete marker; return the count."""
    pending: List[Dict[str, str]] = []
    deleted = 0
    for page in provider_pages(s3, "list_object_versions", Bucket=bucket_name):
        for item in page.get("Versions", []) + page.get("DeleteMarkers", []):
            pending.append({"Key": item["Key"], "VersionId": item["VersionId"]})
            if len(pending) == _DELETE_BATCH:
                deleted += _delete_batch(s3, bucket_name, pending)
                pending = []
    if pending:
        deleted += _delete_batch(s3, bucket_name, pending)
    logger.info("Removed %d object version(s) from %s", deleted, bucket_name)
    return deleted


def _delete_batch(s3: Any, bucket_name: str, objects: List[Dict[str, str]]) -> int:
    provider_call(
        s3, "delete_objects",
        Bucket=bucket_name, Delete={"Objects": objects, "Quiet": True},
    )
    return len(objects)


def delete_bucket(s3: Any, bucket_name: str) -> None:
    provider_call(s3, "delete_bucket", Bucket=bucket_name)
