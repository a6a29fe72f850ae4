"""S3 document store adapter."""

from typing import Any, Optional

import boto3

from core.errors import ValidationError
from doc_pipeline.clients.base import Document


class S3BlobStore:
    """BlobStore backed by S3. A default bucket covers messages that omit one."""

    def __init__(
        self,
        default_bucket: Optional[str] = None,
        region: Optional[str] = None,
        client: Any = None,
    ):
        self.default_bucket = default_bucket
        self._client = client or boto3.client("s3", region_name=region)

    def get_document(self, bucket: Optional[str], key: str) -> Document:
        bucket = bucket or self.default_bucket
        if not bucket:
            raise ValidationError(
                "No bucket given for document and no default bucket configured",
                context={"document_key": key},
            )

        response = self._client.get_object(Bucket=bucket, Key=key)
        body = response["Body"]
        try:
            content = body.read()
        finally:
            body.close()

        return Document(
            bucket=bucket,
            key=key,
            content=content,
            etag=(response.get("ETag") or "").strip('"') or None,
            content_type=response.get("ContentType"),
            metadata=response.get("Metadata") or {},
        )
