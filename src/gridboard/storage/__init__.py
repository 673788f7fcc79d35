"""
Storage backends for Gridboard.

This package provides storage implementations for persisting dashboard
state per namespace:

- LocalStorage: SQLite-based storage for development and single-user scenarios
- S3Storage: S3-based storage for hosted deployments

Use the get_storage() factory function to get the appropriate backend.
"""

from gridboard.storage.base import (
    SHARED_NAMESPACE,
    StateStorage,
    StorageError,
    resolve_namespace,
)
from gridboard.storage.local import LocalStorage
from gridboard.storage.s3 import S3Storage


def get_storage(backend: str = "local", **kwargs) -> StateStorage:
    """
    Factory function to get the appropriate storage backend.

    Args:
        backend: Storage backend type. Supported values:
            - "local": SQLite-based local storage
            - "s3": AWS S3 storage
        **kwargs: Backend-specific configuration options

    Returns:
        Configured StateStorage instance

    Raises:
        ValueError: If backend type is unknown

    Examples:
        # Local storage with default path
        storage = get_storage("local")

        # Local storage with custom path
        storage = get_storage("local", db_path="/tmp/gridboard.db")

        # AWS S3 storage
        storage = get_storage("s3", bucket="my-bucket", prefix="gridboard")
    """
    backend = backend.lower()

    if backend == "local":
        return LocalStorage(**kwargs)

    elif backend == "s3":
        return S3Storage(**kwargs)

    else:
        raise ValueError(
            f"Unknown storage backend: {backend}. "
            "Supported backends: 'local', 's3'"
        )


def list_available_backends() -> list[str]:
    """
    List available storage backends.

    Returns:
        List of available backend names
    """
    return ["local", "s3"]


__all__ = [
    # Base
    "SHARED_NAMESPACE",
    "StateStorage",
    "StorageError",
    "resolve_namespace",
    # Implementations
    "LocalStorage",
    "S3Storage",
    # Factory
    "get_storage",
    "list_available_backends",
]
