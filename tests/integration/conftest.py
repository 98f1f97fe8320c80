import re
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
import pytz

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from ordercheck.config import (  # noqa: E402
    Config, CollectionConfig, EngineTimeouts, RetryConfig, ThresholdConfig, MetricsConfig, BrowserConfig,
    ApplicationConfig
)
from ordercheck.engines.registry import create_default_registry  # noqa: E402
from ordercheck.events import RecordingEventSink  # noqa: E402
from ordercheck.exceptions import BrowserLaunchError, NavigationFailure, ReadinessTimeout  # noqa: E402
from ordercheck.metrics.history import MetricsHistoryRepository  # noqa: E402
from ordercheck.metrics.quality import QualityMetricsAggregator  # noqa: E402
from ordercheck.models.record import Record  # noqa: E402
from ordercheck.models.metrics import (  # noqa: E402
    CategoryScore, MetricScore, OverallScore, QualityMetricsSnapshot,
    FUNCTIONAL, PERFORMANCE, SECURITY, DATA_QUALITY, API_QUALITY
)
from ordercheck.models.run import PerformanceMetrics, RunResult, STOP_TARGET_REACHED  # noqa: E402
from ordercheck.runner import ValidationRunner  # noqa: E402
from ordercheck.validation.engine import SortingValidator  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=pytz.UTC)
BASE_URL = "https://news.example.com/newest"
FAST_TIMEOUTS = EngineTimeouts(navigation_ms=1000, element_ms=1000, default_ms=1000)

DEFAULT_ANCHORS = frozenset({'.athing', '.athing, tr[id^="thing"]'})

_SIBLING_PATTERN = re.compile(r'\[id="([^"]+)"\] \+ tr \.(\w+)')
_SCORE_ID_PATTERN = re.compile(r'^#score_(\S+)$')


@dataclass
class FakeItem:
    id: str
    age: Optional[str] = "1 minute ago"
    title: Optional[str] = "A reasonably long story title"
    href: Optional[str] = "https://example.com/story"
    score: Optional[str] = "10 points"
    author: Optional[str] = "alice"
    title_in_sibling: bool = False
    # Number of times reading the row id raises before it succeeds
    id_failures: int = 0


@dataclass
class FakePage:
    items: List[FakeItem]
    next_href: Optional[str] = None
    anchor_selectors: frozenset = DEFAULT_ANCHORS
    title_rows: bool = True
    # Operations ('title_rows', 'anchors', 'next_link', 'performance') that raise like a torn-down page
    broken: frozenset = frozenset()


@dataclass
class FakeHandle:
    kind: str
    text: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)
    item: Optional[FakeItem] = None


class FakeListingPage:
    """In-memory listing that answers the selectors the engine profiles use."""

    def __init__(self,
                 pages: Dict[str, FakePage],
                 nav_failures: Optional[Dict[str, int]] = None,
                 load_time_ms: float = 1200.0,
                 screenshot_error: bool = False) -> None:
        self.pages = pages
        self.nav_failures = dict(nav_failures or {})
        self.load_time_ms = load_time_ms
        self.screenshot_error = screenshot_error
        self.navigations: List[str] = []
        self.waits: List[str] = []
        self.screenshots: List[str] = []
        self._url = ""

    @property
    def current_url(self) -> str:
        return self._url

    @property
    def _page(self) -> FakePage:
        return self.pages[self._url]

    async def navigate(self, url: str, timeout_ms: int) -> None:
        self.navigations.append(url)
        if self.nav_failures.get(url, 0) > 0:
            self.nav_failures[url] -= 1
            raise NavigationFailure(url, timeout_ms)
        if url not in self.pages:
            raise NavigationFailure(url, timeout_ms)
        self._url = url

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        self.waits.append(selector)
        page = self._page
        if selector.startswith('tr[id="'):
            self._check_broken('title_rows')
            if page.title_rows:
                return
            raise ReadinessTimeout([selector], timeout_ms)
        if selector in page.anchor_selectors and page.items:
            return
        raise ReadinessTimeout([selector], timeout_ms)

    async def query_all(self, selector: str, scope: Optional[Any] = None) -> List[Any]:
        page = self._page
        if scope is None and selector in page.anchor_selectors:
            self._check_broken('anchors')
            return [FakeHandle('row', attrs={'id': item.id}, item=item) for item in page.items]
        return []

    async def query_one(self, selector: str, scope: Optional[Any] = None) -> Optional[Any]:
        if scope is not None:
            return self._scoped(selector, scope.item)

        if selector == '.morelink':
            self._check_broken('next_link')
            href = self._page.next_href
            return FakeHandle('more', attrs={'href': href}) if href else None

        match = _SCORE_ID_PATTERN.match(selector)
        if match:
            return self._field(self._item(match.group(1)), 'score')

        match = _SIBLING_PATTERN.search(selector)
        if match:
            item = self._item(match.group(1))
            if match.group(2) == 'storylink':
                if item is not None and item.title_in_sibling and item.title:
                    return FakeHandle('title', text=item.title, attrs={'href': item.href or ''})
                return None
            return self._field(item, match.group(2))
        return None

    def _check_broken(self, operation: str) -> None:
        if operation in self._page.broken:
            raise RuntimeError("Execution context was destroyed")

    def _item(self, record_id: str) -> Optional[FakeItem]:
        for item in self._page.items:
            if item.id == record_id:
                return item
        return None

    def _field(self, item: Optional[FakeItem], css_class: str) -> Optional[FakeHandle]:
        if item is None:
            return None
        value = {'age': item.age, 'score': item.score, 'hnuser': item.author}.get(css_class)
        return FakeHandle(css_class, text=value) if value else None

    def _scoped(self, selector: str, item: FakeItem) -> Optional[FakeHandle]:
        if selector in ('.age', '.score', '.hnuser'):
            return self._field(item, selector[1:])
        if item.title_in_sibling or not item.title:
            return None
        is_link_strategy = 'href' in selector and 'user?id' not in selector
        if 'titleline' in selector or (is_link_strategy and (item.href or '').startswith('http')):
            return FakeHandle('title', text=item.title, attrs={'href': item.href or ''})
        return None

    async def read_text(self, handle: Any) -> str:
        return handle.text

    async def read_attribute(self, handle: Any, name: str) -> Optional[str]:
        if handle.kind == 'row' and name == 'id' and handle.item.id_failures > 0:
            handle.item.id_failures -= 1
            raise RuntimeError("element is not attached to the DOM")
        value = handle.attrs.get(name)
        return value or None

    async def screenshot(self, path: str) -> None:
        if self.screenshot_error:
            raise OSError("disk full")
        self.screenshots.append(path)

    async def performance(self) -> PerformanceMetrics:
        self._check_broken('performance')
        return PerformanceMetrics(load_time_ms=self.load_time_ms, dom_content_loaded_ms=self.load_time_ms / 2)


def _page_url(number: int) -> str:
    return BASE_URL if number == 1 else f"{BASE_URL}?p={number}"


@pytest.fixture
def make_items() -> Callable[..., List[FakeItem]]:
    """Items aged 1, 2, 3... minutes (newest first) unless ages are given."""

    def _make(prefix: str, count: int, start_minute: int = 1, **overrides: Any) -> List[FakeItem]:
        items = []
        for index in range(count):
            fields = {'age': f"{start_minute + index} minutes ago"}
            fields.update(overrides)
            items.append(FakeItem(id=f"{prefix}{index}", **fields))
        return items

    return _make


@pytest.fixture
def build_listing(make_items) -> Callable[..., Dict[str, FakePage]]:
    """Listing with one FakePage per size, chained through relative morelinks."""

    def _build(page_sizes: Sequence[int], last_has_next: bool = False, **page_options: Any) -> Dict[str, FakePage]:
        pages = {}
        minute = 1
        for number, size in enumerate(page_sizes, start=1):
            is_last = number == len(page_sizes)
            next_href = f"newest?p={number + 1}" if (not is_last or last_has_next) else None
            pages[_page_url(number)] = FakePage(
                items=make_items(f"p{number}-", size, start_minute=minute),
                next_href=next_href,
                **page_options
            )
            minute += size
        return pages

    return _build


@pytest.fixture
def collection_config(tmp_path) -> CollectionConfig:
    return CollectionConfig(
        listing_url=BASE_URL,
        target_count=100,
        max_pages=5,
        page_retry=RetryConfig(max_attempts=3, backoff_ms=0),
        record_retry=RetryConfig(max_attempts=2, backoff_ms=0),
        screenshot_dir=str(tmp_path / "screenshots")
    )


@pytest.fixture
def recorder() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


def _make_record(record_id: str,
                minutes_ago: Optional[float],
                title: Optional[str] = "A reasonably long story title",
                author: Optional[str] = "alice",
                score: Optional[int] = 10) -> Record:
    """Record whose timestamp is ``minutes_ago`` before FIXED_NOW (None for no timestamp)."""
    timestamp = None if minutes_ago is None else FIXED_NOW - timedelta(minutes=minutes_ago)
    return Record(
        id=record_id,
        raw_time_text=f"{minutes_ago} minutes ago",
        timestamp=timestamp,
        title=title,
        score=score,
        author=author
    )


def _records_from_minutes(minutes: Sequence[Optional[float]]) -> List[Record]:
    return [_make_record(f"r{index}", value) for index, value in enumerate(minutes)]


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def page_url() -> Callable[[int], str]:
    return _page_url


@pytest.fixture
def fast_timeouts() -> EngineTimeouts:
    return FAST_TIMEOUTS


@pytest.fixture
def fake_item() -> Callable[..., FakeItem]:
    return FakeItem


@pytest.fixture
def fake_page_factory() -> Callable[..., FakeListingPage]:
    return FakeListingPage


@pytest.fixture
def fake_listing_page() -> Callable[..., FakePage]:
    return FakePage


@pytest.fixture
def make_record() -> Callable[..., Record]:
    return _make_record


@pytest.fixture
def records_from_minutes() -> Callable[[Sequence[Optional[float]]], List[Record]]:
    return _records_from_minutes


@pytest.fixture
def make_run() -> Callable[..., RunResult]:
    def _make(records: Sequence[Record],
              load_time_ms: float = 1200.0,
              target_count: Optional[int] = None,
              stop_reason: str = STOP_TARGET_REACHED,
              engine: str = "chromium",
              viewport: str = "Desktop") -> RunResult:
        return RunResult(
            engine=engine,
            viewport=viewport,
            records=tuple(records),
            performance=PerformanceMetrics(load_time_ms=load_time_ms),
            started_at=FIXED_NOW,
            duration_ms=2500.0,
            target_count=len(records) if target_count is None else target_count,
            pages_visited=1,
            stop_reason=stop_reason
        )

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., QualityMetricsSnapshot]:
    """Snapshot with every category scored ``score`` unless overridden."""

    def _make(timestamp: datetime = FIXED_NOW,
              overall: int = 90,
              score: float = 90.0,
              sorting_accuracy: float = 100.0,
              load_time: float = 1000.0,
              security: float = 95.0,
              completeness: float = 100.0,
              **category_scores: float) -> QualityMetricsSnapshot:
        metrics = {
            FUNCTIONAL: {'sorting_accuracy': sorting_accuracy, 'error_rate': 0},
            PERFORMANCE: {'load_time': load_time, 'performance_score': 100 - load_time / 50},
            SECURITY: {'security_score': security},
            DATA_QUALITY: {'completeness': completeness},
            API_QUALITY: {'availability': 100.0},
        }
        categories = {
            name: CategoryScore(
                name,
                category_scores.get(name, score),
                {key: MetricScore(value) for key, value in values.items()}
            )
            for name, values in metrics.items()
        }
        return QualityMetricsSnapshot(
            timestamp=timestamp,
            run_id=f"run_{int(timestamp.timestamp() * 1000)}_chromium_desktop",
            engine="chromium",
            viewport="Desktop",
            execution_time_ms=2500.0,
            categories=categories,
            overall=OverallScore(
                value=overall, raw_value=float(overall), threshold=85.0,
                grade='A' if overall >= 90 else 'B', status='PASS' if overall >= 85 else 'FAIL'
            )
        )

    return _make


@pytest.fixture
def runner_config(collection_config, tmp_path):
    collection_config.target_count = 60
    return Config(
        collection=collection_config,
        thresholds=ThresholdConfig(),
        metrics=MetricsConfig(history_file=str(tmp_path / "history.json")),
        browser=BrowserConfig(engines=['chromium'], viewports=['desktop', 'mobile']),
        app=ApplicationConfig(reports_dir=str(tmp_path / "reports"))
    )


@pytest.fixture
def session_factory(build_listing, fake_page_factory):
    opened = []

    def _factory(engine, viewport, config):
        @asynccontextmanager
        async def _session():
            if engine == 'firefox':
                raise BrowserLaunchError(engine, RuntimeError("executable missing"))
            if viewport.name == 'Tablet':
                raise RuntimeError("Target page, context or browser has been closed")
            page = fake_page_factory(build_listing([30, 30, 30]))
            opened.append((engine, viewport.name, page))
            yield page

        return _session()

    _factory.opened = opened
    return _factory


@pytest.fixture
def make_runner(runner_config, session_factory, fixed_clock):
    def _make(with_aggregator=True):
        aggregator = None
        if with_aggregator:
            history = MetricsHistoryRepository(runner_config.metrics.history_file, clock=fixed_clock)
            aggregator = QualityMetricsAggregator(history, runner_config.thresholds, clock=fixed_clock)
        return ValidationRunner(
            runner_config,
            create_default_registry(),
            SortingValidator(),
            aggregator,
            session_factory=session_factory,
            clock=fixed_clock
        )

    return _make
