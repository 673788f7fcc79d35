"""
Abstract base class for state storage backends.

This module defines the StateStorage interface that every backend
implements, the StorageError raised on I/O failures, and the namespace
rules shared by all backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from gridboard.models import DashboardState

# Namespace used when no per-user namespace is given.
SHARED_NAMESPACE = "shared"


class StorageError(Exception):
    """A storage backend could not read or write state."""

    def __init__(self, message: str, namespace: str | None = None):
        super().__init__(message)
        self.namespace = namespace


def resolve_namespace(namespace: str | None) -> str:
    """
    Map an optional per-user namespace to a storage key.

    Args:
        namespace: Opaque user namespace, or None for shared storage

    Returns:
        The namespace to read and write under
    """
    if namespace is None:
        return SHARED_NAMESPACE
    namespace = str(namespace).strip()
    return namespace or SHARED_NAMESPACE


class StateStorage(ABC):
    """
    Abstract base class for state storage implementations.

    A backend stores one DashboardState per namespace. Implementations
    raise StorageError when the underlying store fails; a namespace that
    has never been saved is not an error.
    """

    name: str = "base"

    @abstractmethod
    def load(self, namespace: str | None = None) -> DashboardState | None:
        """
        Load the state saved under a namespace.

        Args:
            namespace: Namespace to read. None reads the shared namespace.

        Returns:
            The stored state, or None if nothing was saved yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, namespace: str | None, state: DashboardState) -> None:
        """
        Replace the state saved under a namespace.

        Args:
            namespace: Namespace to write. None writes the shared namespace.
            state: State to persist

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    def delete(self, namespace: str | None = None) -> bool:
        """
        Remove a namespace's state.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def list_namespaces(self) -> list[str]:
        """List namespaces that have saved state, sorted."""
        pass

    def exists(self, namespace: str | None = None) -> bool:
        """Check whether a namespace has saved state."""
        return resolve_namespace(namespace) in self.list_namespaces()
