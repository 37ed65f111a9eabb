"""S3-compatible object storage backend (AWS, GCS interop, Cloudflare R2, MinIO)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from agentsync.backends.base import (
    WRITE_BATCH_SIZE,
    Backend,
    ProgressCallback,
    PushManyResult,
    PushRequest,
    RemoteResourceDescriptor,
    batched,
    id_from_key,
    object_key,
)
from agentsync.core.crypto import assert_encrypted
from agentsync.core.errors import NotFoundError, TransportError
from agentsync.core.types import RESOURCE_CONFIGS, ItemError, ResourceType
from agentsync.resources.base import ResourceMetadata

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3Backend(Backend):
    """Backend storing each resource as one object in a bucket."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = DEFAULT_REGION,
        prefix: str = "",
    ) -> None:
        """Initialize S3 backend.

        Args:
            bucket: Bucket name.
            endpoint_url: Custom endpoint URL (GCS, R2, MinIO...).
            access_key: Access key ID (default credential chain if None).
            secret_key: Secret access key.
            region: Region name (default: us-east-1).
            prefix: Optional root prefix inside the bucket.
        """
        import boto3
        from botocore.config import Config

        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._root = f"{prefix.strip('/')}/" if prefix.strip("/") else ""
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(s3={"addressing_style": "path"}) if endpoint_url else None,
        )

    @property
    def location(self) -> str:
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}/{self._bucket}/{self._root}"
        return f"S3: s3://{self._bucket}/{self._root}"

    def _key(self, resource_type: ResourceType, resource_id: str) -> str:
        return f"{self._root}{object_key(resource_type, resource_id)}"

    def init(self) -> None:
        """Verify the bucket is reachable with the configured credentials."""
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Cannot access bucket {self._bucket}: {e}") from e

    def _put(self, resource_type: ResourceType, request: PushRequest) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        assert_encrypted(request.ciphertext, f"{resource_type.value} {request.id}")
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._key(resource_type, request.id),
                Body=request.ciphertext,
                ContentType="application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Upload of {request.id} failed: {e}") from e

    def push_one(
        self,
        resource_type: ResourceType,
        resource_id: str,
        ciphertext: bytes,
        metadata: ResourceMetadata | None = None,
    ) -> None:
        self._put(resource_type, PushRequest(resource_id, ciphertext))
        logger.info(f"Pushed {resource_type.value} {resource_id} to {self._bucket}")

    def push_many(
        self,
        resource_type: ResourceType,
        items: Sequence[PushRequest],
        on_progress: ProgressCallback | None = None,
    ) -> PushManyResult:
        result = PushManyResult()
        done = 0
        for batch in batched(items, WRITE_BATCH_SIZE):
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [(req, pool.submit(self._put, resource_type, req)) for req in batch]
                for request, future in futures:
                    try:
                        future.result()
                    except Exception as e:
                        logger.error(f"Failed to upload {resource_type.value} {request.id}: {e}")
                        result.errors.append(ItemError(request.id, str(e)))
                    else:
                        result.pushed.append(request.id)
            done += len(batch)
            if on_progress:
                on_progress(done, len(items))
        if result.pushed:
            logger.info(f"Pushed {result.pushed_count} {resource_type.value} to {self._bucket}")
        return result

    def pull_one(self, resource_type: ResourceType, resource_id: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client.get_object(
                Bucket=self._bucket,
                Key=self._key(resource_type, resource_id),
            )
            body: bytes = response["Body"].read()
            return body
        except ClientError as e:
            if e.response["Error"]["Code"] in _NOT_FOUND_CODES:
                raise NotFoundError(
                    f"{resource_type.value} {resource_id} not found in {self._bucket}"
                ) from e
            raise TransportError(f"Download of {resource_id} failed: {e}") from e
        except BotoCoreError as e:
            raise TransportError(f"Download of {resource_id} failed: {e}") from e

    def list_all(self, resource_type: ResourceType) -> list[RemoteResourceDescriptor]:
        from botocore.exceptions import BotoCoreError, ClientError

        prefix = f"{self._root}{RESOURCE_CONFIGS[resource_type].storage_prefix}"
        descriptors = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    resource_id = id_from_key(obj["Key"][len(prefix):])
                    if resource_id is not None:
                        descriptors.append(RemoteResourceDescriptor(resource_id, resource_type))
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Listing {prefix} failed: {e}") from e
        return descriptors

    def _exists(self, key: str) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in _NOT_FOUND_CODES:
                return False
            raise TransportError(f"Cannot check {key}: {e}") from e
        except BotoCoreError as e:
            raise TransportError(f"Cannot check {key}: {e}") from e

    def delete_one(self, resource_type: ResourceType, resource_id: str) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        key = self._key(resource_type, resource_id)
        if not self._exists(key):
            return False
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Delete of {resource_id} failed: {e}") from e
        return True
