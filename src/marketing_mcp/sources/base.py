"""Common interface for content source adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from ..models import FetchResult

T = TypeVar("T")


class ContentSource(ABC, Generic[T]):
    """Fetch-and-normalize adapter for one content domain."""

    name: str = ""

    @property
    @abstractmethod
    def title(self) -> str:
        """Display title stamped on every snapshot of this domain."""

    @abstractmethod
    async def load(self) -> FetchResult[T]:
        """Fetch and normalize the current content."""

    @abstractmethod
    def default(self) -> T:
        """Statically defined content used when nothing else is available."""

    async def aclose(self) -> None:
        """Release upstream connections."""
