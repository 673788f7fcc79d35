"""
S3-based storage implementation for hosted deployments.

This module provides S3Storage, a storage backend that keeps each
namespace's dashboard state as one JSON object in Amazon S3.
"""

from __future__ import annotations

import json
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from gridboard.models import DashboardState
from gridboard.observability import get_logger
from gridboard.storage.base import StateStorage, StorageError, resolve_namespace

logger = get_logger("storage.s3")


class S3Storage(StateStorage):
    """
    S3-based state storage.

    Objects are stored at ``<prefix>/state/<namespace>.json``.

    Attributes:
        bucket: S3 bucket name
        prefix: Key prefix for all stored objects
        region: AWS region
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        prefix: str = "gridboard",
        region: str = "us-east-1",
    ) -> None:
        """
        Initialize the S3 storage backend.

        Args:
            bucket: S3 bucket name for storage
            prefix: Key prefix for all objects (default: "gridboard")
            region: AWS region (default: "us-east-1")

        Raises:
            ValueError: If no bucket is given
        """
        if not bucket:
            raise ValueError("S3Storage requires a bucket name")
        self.bucket = bucket
        self.prefix = prefix.rstrip("/")
        self.region = region
        self._client: Any = None

    def _get_s3_client(self) -> Any:
        """Get or create S3 client."""
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def _get_key(self, namespace: str) -> str:
        """Build the object key for a namespace."""
        return "/".join([self.prefix, "state", f"{namespace}.json"])

    def _error(self, action: str, key: str, namespace: str | None, e: Exception) -> StorageError:
        if isinstance(e, ClientError):
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "AccessDenied":
                message = f"Access denied when {action} s3://{self.bucket}/{key}"
            elif error_code == "NoSuchBucket":
                message = f"Bucket does not exist: {self.bucket}"
            else:
                message = f"S3 error {error_code} when {action} s3://{self.bucket}/{key}"
        else:
            message = f"S3 failure when {action} s3://{self.bucket}/{key}: {e}"
        return StorageError(message, namespace)

    def load(self, namespace: str | None = None) -> DashboardState | None:
        """Load the state saved under a namespace."""
        ns = resolve_namespace(namespace)
        key = self._get_key(ns)
        client = self._get_s3_client()

        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"].read().decode("utf-8")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                return None
            raise self._error("reading", key, ns, e) from e
        except BotoCoreError as e:
            raise self._error("reading", key, ns, e) from e

        try:
            return DashboardState.from_dict(json.loads(body))
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            raise StorageError(f"Corrupt state at s3://{self.bucket}/{key}: {e}", ns) from e

    def save(self, namespace: str | None, state: DashboardState) -> None:
        """Replace the state saved under a namespace."""
        ns = resolve_namespace(namespace)
        key = self._get_key(ns)
        client = self._get_s3_client()
        body = json.dumps(state.to_dict(), indent=2)

        try:
            client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise self._error("writing to", key, ns, e) from e
        logger.debug(f"Wrote s3://{self.bucket}/{key}")

    def delete(self, namespace: str | None = None) -> bool:
        """Remove a namespace's state."""
        ns = resolve_namespace(namespace)
        if not self.exists(ns):
            return False
        key = self._get_key(ns)
        try:
            self._get_s3_client().delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._error("deleting", key, ns, e) from e
        return True

    def list_namespaces(self) -> list[str]:
        """List namespaces that have saved state."""
        client = self._get_s3_client()
        state_prefix = "/".join([self.prefix, "state", ""])
        namespaces: list[str] = []

        try:
            paginator = client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=state_prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(state_prefix):]
                    if name.endswith(".json") and "/" not in name:
                        namespaces.append(name[: -len(".json")])
        except (ClientError, BotoCoreError) as e:
            raise self._error("listing", state_prefix, None, e) from e
        return sorted(namespaces)
