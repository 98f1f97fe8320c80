#!/usr/bin/env python3
"""
Browser capability interface.

The collector and the extraction chains only ever talk to a ListingPage.
Element handles are opaque: they are whatever the implementation returns
from query_all/query_one and are only passed back into it.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ordercheck.models.run import PerformanceMetrics


class ListingPage(ABC):
    """Minimal page surface needed to read a paginated listing."""

    @property
    @abstractmethod
    def current_url(self) -> str:
        """URL of the page currently loaded."""
        pass

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        """
        Load ``url``.

        Raises:
            NavigationFailure: If the load fails or exceeds ``timeout_ms``
        """
        pass

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        """
        Wait until ``selector`` is attached to the document.

        Raises:
            ReadinessTimeout: If nothing matches within ``timeout_ms``
        """
        pass

    @abstractmethod
    async def query_all(self, selector: str, scope: Optional[Any] = None) -> List[Any]:
        """All matches of ``selector``, searched inside ``scope`` when given."""
        pass

    @abstractmethod
    async def query_one(self, selector: str, scope: Optional[Any] = None) -> Optional[Any]:
        """First match of ``selector`` or None."""
        pass

    @abstractmethod
    async def read_text(self, handle: Any) -> str:
        pass

    @abstractmethod
    async def read_attribute(self, handle: Any, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def screenshot(self, path: str) -> None:
        pass

    @abstractmethod
    async def performance(self) -> PerformanceMetrics:
        """Navigation timing of the currently loaded document."""
        pass
