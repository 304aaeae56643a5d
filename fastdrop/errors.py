"""Error taxonomy for fastdrop."""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Why an upload failed."""
    CONFIGURATION = "configuration"
    NETWORK = "network"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {
            ErrorKind.CONFIGURATION: "Configuration error",
            ErrorKind.NETWORK: "Network error",
            ErrorKind.UNKNOWN: "Unexpected error",
        }[self]


class UploadError(Exception):
    """Raised by providers on any non-success outcome."""

    def __init__(
        self,
        kind: ErrorKind,
        detail: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        self.body = body

    @property
    def message(self) -> str:
        """Human readable, kind-tagged message for the entry."""
        return f"{self.kind.label}: {self.detail}"

    def __repr__(self) -> str:
        return f"UploadError(kind={self.kind.name}, detail={self.detail!r})"


class InvalidTransitionError(RuntimeError):
    """Raised when an entry is asked to make an illegal state transition."""

    def __init__(self, current: str, target: str):
        super().__init__(f"cannot move upload from {current} to {target}")
        self.current = current
        self.target = target


class EntryNotFoundError(KeyError):
    """Raised when an entry id is not (or no longer) in the registry."""
