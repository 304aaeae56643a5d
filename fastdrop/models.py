"""
Models for fastdrop.

Entries are mutable (the registry owns and updates them), everything else
is an immutable dataclass.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ErrorKind, InvalidTransitionError


class UploadState(Enum):
    """Upload entry state."""
    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (UploadState.SUCCESS, UploadState.ERROR)


class ProviderKind(Enum):
    """Available upload backends. Values match the persisted settings."""
    ANONYMOUS_HOST = "0x0"
    CLOUD_STORE = "googledrive"

    @classmethod
    def parse(cls, value: str) -> "ProviderKind":
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"unknown provider: {value}") from None


@dataclass
class UploadEntry:
    """One tracked upload attempt for a single file path."""
    path: Path
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: UploadState = UploadState.IDLE
    progress: int = 0
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def display_name(self) -> str:
        return self.path.name or str(self.path)

    def begin(self) -> None:
        if self.state is not UploadState.IDLE:
            raise InvalidTransitionError(self.state.value, UploadState.UPLOADING.value)
        self.state = UploadState.UPLOADING
        self.progress = 0

    def advance(self, step: int, cap: int) -> bool:
        """Bump synthetic progress. Returns True if the value changed."""
        if self.state is not UploadState.UPLOADING or self.progress >= cap:
            return False
        self.progress = min(self.progress + step, cap)
        return True

    def succeed(self, url: str) -> None:
        if self.state is not UploadState.UPLOADING:
            raise InvalidTransitionError(self.state.value, UploadState.SUCCESS.value)
        self.state = UploadState.SUCCESS
        self.progress = 100
        self.result_url = url

    def fail(self, message: str, kind: ErrorKind) -> None:
        if self.state is not UploadState.UPLOADING:
            raise InvalidTransitionError(self.state.value, UploadState.ERROR.value)
        self.state = UploadState.ERROR
        self.progress = 0
        self.error_message = message
        self.error_kind = kind

    def snapshot(self) -> "UploadEntry":
        """Detached copy, safe to hand to listeners."""
        return UploadEntry(
            path=self.path,
            entry_id=self.entry_id,
            state=self.state,
            progress=self.progress,
            result_url=self.result_url,
            error_message=self.error_message,
            error_kind=self.error_kind,
        )


@dataclass(frozen=True)
class Credentials:
    """OAuth client credentials for the cloud store."""
    client_id: str
    client_secret: str
    refresh_token: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, client_secret='***')"


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of begin_upload."""
    url: Optional[str] = None
    message: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def success(self) -> bool:
        return self.url is not None

    @classmethod
    def ok(cls, url: str) -> "UploadOutcome":
        return cls(url=url)

    @classmethod
    def fail(cls, message: str, kind: ErrorKind) -> "UploadOutcome":
        return cls(message=message, kind=kind)


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for the upload engine."""
    progress_interval: float = 0.2
    progress_step: int = 10
    progress_cap: int = 90
    anonymous_host_url: str = "https://0x0.st"
    user_agent: str = "FastDrop/1.0"
    drive_folder_id: Optional[str] = None
    timeout: float = 300.0
    notification_title: str = "FastDrop - Upload Complete"
