"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces so the engine can be driven with test doubles.
"""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class IProvider(Protocol):
    """Interface for a storage backend."""

    name: str

    async def upload(self, data: bytes, filename: str) -> str:
        """Store bytes remotely and return a shareable URL."""
        ...


@runtime_checkable
class IClipboard(Protocol):
    """Interface for the system clipboard."""

    async def copy(self, text: str) -> None:
        ...


@runtime_checkable
class INotifier(Protocol):
    """Interface for OS notifications."""

    async def notify(self, title: str, body: str, url: Optional[str] = None) -> bool:
        ...
