#!/usr/bin/env python3
"""
Resilient Paginated Collector

Walks the listing page by page (Navigate -> WaitReady -> Extract -> Append ->
Decide) until it holds ``target_count`` unique, timestamped records, runs out
of pages, or hits the page ceiling.

Pages are visited strictly one after another. Records on a page are
extracted concurrently, each with its own timeout and retry budget, while
page loads have a separate retry budget.
"""

import asyncio
import time
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Set
from urllib.parse import urljoin

from ordercheck.browser.base import ListingPage
from ordercheck.config import CollectionConfig
from ordercheck.engines.base import EngineProfile, ReadinessOutcome
from ordercheck.events import (
    CollectorEvent, EventSink, null_sink,
    PAGE_STARTED, PAGE_COMPLETED, PAGE_RETRY, PAGE_SKIPPED, READINESS_FALLBACK, READINESS_DEGRADED,
    RECORD_RETRY, RECORD_DROPPED, RECORD_DUPLICATE, SCREENSHOT_SAVED, SCREENSHOT_FAILED, COLLECTION_FINISHED
)
from ordercheck.exceptions import (
    CollectionError, ExtractionFailure, InsufficientFirstPageData, PageInteractionFailure,
    RecordTimestampUnresolvable
)
from ordercheck.extraction.record import RecordExtractor
from ordercheck.models.record import Record
from ordercheck.models.run import (
    PerformanceMetrics, RunResult,
    STOP_TARGET_REACHED, STOP_NO_NEXT_PAGE, STOP_PAGE_CEILING, STOP_PAGE_FAILED
)
from ordercheck.retry import retry_async
from ordercheck.time_parser import now_utc

logger = logging.getLogger(__name__)


class PaginatedCollector:
    """Collects a target-sized, deduplicated list of records from a listing."""

    def __init__(self,
                 page: ListingPage,
                 profile: EngineProfile,
                 config: Optional[CollectionConfig] = None,
                 event_sink: Optional[EventSink] = None,
                 viewport: str = "Desktop",
                 clock: Callable[[], datetime] = now_utc):
        """
        Initialize collector.

        Args:
            page: Browser page to drive
            profile: Engine profile supplying selectors, timeouts and readiness
            config: Collection limits and retry budgets
            event_sink: Receives CollectorEvent values; events are dropped when None
            viewport: Viewport name recorded on the result
            clock: Reference time source for relative timestamps
        """
        self.page = page
        self.profile = profile
        self.config = config or CollectionConfig()
        self.viewport = viewport
        self._emit = event_sink or null_sink
        self._clock = clock
        self._extractor = RecordExtractor(profile)

    async def collect(self, start_url: Optional[str] = None, target_count: Optional[int] = None) -> RunResult:
        """
        Collect records starting at ``start_url``.

        Returns:
            RunResult with at most ``target_count`` records in listing order

        Raises:
            InsufficientFirstPageData: If the first page fails or yields nothing
        """
        url = start_url or self.config.listing_url
        target = target_count if target_count is not None else self.config.target_count

        started_at = self._clock()
        started = time.monotonic()
        collected: List[Record] = []
        seen: Set[str] = set()
        skipped: List[str] = []
        performance = PerformanceMetrics()
        page_number = 0
        stop_reason = STOP_TARGET_REACHED

        while len(collected) < target:
            page_number += 1
            self._event(PAGE_STARTED, f"Loading {url}", page_number, url)

            try:
                readiness = await self._load_page(url, page_number)
                if page_number == 1:
                    performance = await self._read_performance()
                records = await self._extract_page(url, page_number, readiness)
            except CollectionError as e:
                await self._give_up_on_page(e, url, page_number)
                skipped.append(url)
                stop_reason = STOP_PAGE_FAILED
                break

            appended = self._append(records, collected, seen, target, page_number)

            if page_number == 1 and not collected:
                screenshot_path = await self._capture_diagnostics(page_number)
                raise InsufficientFirstPageData(url, "no record with a resolvable timestamp", screenshot_path)

            self._event(PAGE_COMPLETED, f"Appended {appended} of {len(records)} records, {len(collected)}/{target} total",
                        page_number, url, appended=appended, found=len(records), collected=len(collected))

            if len(collected) >= target:
                stop_reason = STOP_TARGET_REACHED
                break

            if page_number >= self.config.max_pages:
                stop_reason = STOP_PAGE_CEILING
                break

            try:
                href = await self._next_page_href(url)
            except CollectionError as e:
                # The next URL is unknown, so nothing is added to skipped_pages
                self._event(PAGE_SKIPPED, f"Could not read the next page link: {e.message}", page_number + 1,
                            error=e.to_dict())
                stop_reason = STOP_PAGE_FAILED
                break
            if not href:
                stop_reason = STOP_NO_NEXT_PAGE
                break
            url = urljoin(self.page.current_url or url, href)

        duration_ms = (time.monotonic() - started) * 1000
        self._event(COLLECTION_FINISHED, f"Collected {len(collected)}/{target} records from {page_number} pages ({stop_reason})",
                    page_number, url, stop_reason=stop_reason, collected=len(collected))

        return RunResult(
            engine=self.profile.name,
            viewport=self.viewport,
            records=tuple(collected),
            performance=performance,
            started_at=started_at,
            duration_ms=duration_ms,
            target_count=target,
            pages_visited=page_number,
            stop_reason=stop_reason,
            skipped_pages=tuple(skipped)
        )

    async def _load_page(self, url: str, page_number: int) -> ReadinessOutcome:
        """Navigate and wait for anchors, retrying the pair with linear backoff."""

        async def attempt_load(attempt: int) -> ReadinessOutcome:
            try:
                await self.page.navigate(url, self.profile.timeouts.navigation_ms)
                return await self.profile.wait_ready(self.page)
            except CollectionError:
                raise
            except Exception as e:
                raise PageInteractionFailure(url, "loading page", e) from e

        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            self._event(PAGE_RETRY, f"Attempt {attempt} failed ({error}), retrying in {delay:.1f}s",
                        page_number, url, attempt=attempt)

        readiness = await retry_async(attempt_load, self.config.page_retry, on_retry=on_retry)

        if readiness.fallback_used:
            self._event(READINESS_FALLBACK, f"Anchors found with fallback selector {readiness.selector!r}",
                        page_number, url, selector=readiness.selector)
        if readiness.degraded:
            self._event(READINESS_DEGRADED, readiness.detail or "secondary readiness check failed",
                        page_number, url, selector=readiness.selector)
        return readiness

    async def _give_up_on_page(self, error: CollectionError, url: str, page_number: int) -> None:
        """
        Record a page that could not be collected.

        Raises:
            InsufficientFirstPageData: If the page is the first one
        """
        screenshot_path = await self._capture_diagnostics(page_number)
        if page_number == 1:
            raise InsufficientFirstPageData(url, error.message, screenshot_path) from error
        self._event(PAGE_SKIPPED, f"Giving up on page after retries: {error.message}", page_number, url,
                    error=error.to_dict(), screenshot_path=screenshot_path)

    async def _read_performance(self) -> PerformanceMetrics:
        try:
            return await self.page.performance()
        except Exception as e:
            logger.warning(f"Could not read page performance: {e}")
            return PerformanceMetrics()

    async def _next_page_href(self, url: str) -> Optional[str]:
        try:
            return await self.profile.next_page_href(self.page)
        except CollectionError:
            raise
        except Exception as e:
            raise PageInteractionFailure(url, "reading the next page link", e) from e

    async def _extract_page(self, url: str, page_number: int, readiness: ReadinessOutcome) -> List[Record]:
        try:
            anchors = await self.profile.find_anchors(self.page, readiness)
        except CollectionError:
            raise
        except Exception as e:
            raise PageInteractionFailure(url, "finding record anchors", e) from e

        reference = self._clock()
        results = await asyncio.gather(*[
            self._extract_record(anchor, index, reference, page_number)
            for index, anchor in enumerate(anchors)
        ])
        return [record for record in results if record is not None]

    async def _extract_record(self, anchor: Any, index: int, reference: datetime, page_number: int) -> Optional[Record]:
        """Extract one record under the element timeout and record retry budget; None when dropped."""
        timeout_s = self.profile.timeouts.element_ms / 1000.0
        label = f"page{page_number}#{index}"

        async def attempt_extract(attempt: int) -> Record:
            try:
                return await asyncio.wait_for(
                    self._extractor.extract(self.page, anchor, reference, attempt), timeout=timeout_s
                )
            except ExtractionFailure:
                raise
            except asyncio.TimeoutError as e:
                raise ExtractionFailure(label, f"timed out after {self.profile.timeouts.element_ms}ms") from e
            except Exception as e:
                raise ExtractionFailure(label, str(e), e) from e

        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            self._event(RECORD_RETRY, f"Record {label} attempt {attempt} failed: {error}",
                        page_number, attempt=attempt)

        try:
            return await retry_async(attempt_extract, self.config.record_retry, on_retry=on_retry)
        except RecordTimestampUnresolvable as e:
            self._event(RECORD_DROPPED, e.message, page_number, record_id=e.context.get('record_id'),
                        raw_texts=e.context.get('raw_texts'))
        except ExtractionFailure as e:
            self._event(RECORD_DROPPED, e.message, page_number, record_id=e.context.get('record_id'))
        return None

    def _append(self, records: List[Record], collected: List[Record], seen: Set[str],
                target: int, page_number: int) -> int:
        appended = 0
        for record in records:
            if len(collected) >= target:
                break
            if record.id in seen:
                self._event(RECORD_DUPLICATE, f"Record {record.id} already collected", page_number, record_id=record.id)
                continue
            seen.add(record.id)
            collected.append(record)
            appended += 1
        return appended

    async def _capture_diagnostics(self, page_number: int) -> Optional[str]:
        """Best-effort screenshot of the current page."""
        stamp = self._clock().strftime('%Y%m%d-%H%M%S')
        path = Path(self.config.screenshot_dir) / f"{self.profile.name}-{self.viewport.lower()}-page{page_number}-{stamp}.png"
        try:
            await self.page.screenshot(str(path))
        except Exception as e:
            self._event(SCREENSHOT_FAILED, f"Could not save screenshot: {e}", page_number)
            return None
        self._event(SCREENSHOT_SAVED, f"Saved screenshot to {path}", page_number, path=str(path))
        return str(path)

    def _event(self, kind: str, message: str, page_number: Optional[int] = None,
               url: Optional[str] = None, **data: Any) -> None:
        self._emit(CollectorEvent(kind=kind, message=message, page_number=page_number, url=url, data=data))
