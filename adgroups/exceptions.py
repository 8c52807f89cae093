"""Exceptions raised by the group membership resolver."""

from typing import Any, Optional


class GroupResolverError(Exception):
    """Base exception for group resolution errors."""
    pass


class PreconditionError(GroupResolverError, ValueError):
    """Raised when a required identifier is empty or missing."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} cannot be empty")


class DirectoryError(GroupResolverError):
    """Raised when a directory operation fails at the transport level."""

    def __init__(self, message: str, partial: Optional[Any] = None):
        self.message = message
        self.partial = partial
        super().__init__(self.message)
