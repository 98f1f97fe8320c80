import asyncio
from datetime import timedelta

import pytest

from ordercheck.collector import PaginatedCollector
from ordercheck.engines.chromium import ChromiumProfile
from ordercheck.engines.firefox import FirefoxProfile
from ordercheck.engines.registry import create_default_registry
from ordercheck.events import (
    PAGE_RETRY, PAGE_SKIPPED, READINESS_FALLBACK, READINESS_DEGRADED,
    RECORD_RETRY, RECORD_DROPPED, RECORD_DUPLICATE, SCREENSHOT_SAVED, COLLECTION_FINISHED
)
from ordercheck.exceptions import InsufficientFirstPageData
from ordercheck.models.record import UNKNOWN_TITLE
from ordercheck.models.run import (
    PerformanceMetrics, STOP_TARGET_REACHED, STOP_NO_NEXT_PAGE, STOP_PAGE_CEILING, STOP_PAGE_FAILED
)


@pytest.fixture
def collect(collection_config, recorder, fixed_clock, fast_timeouts):
    def _collect(page, profile=None, **config_overrides):
        for key, value in config_overrides.items():
            setattr(collection_config, key, value)
        collector = PaginatedCollector(
            page,
            profile or ChromiumProfile(fast_timeouts),
            collection_config,
            recorder,
            "Desktop",
            fixed_clock
        )
        return asyncio.run(collector.collect())

    return _collect


def test_collects_target_across_pages(collect, build_listing, fake_page_factory, page_url, fixed_now, recorder):
    page = fake_page_factory(build_listing([30, 30, 30, 30, 30]))

    run = collect(page)

    assert run.record_count == 100
    assert run.pages_visited == 4
    assert run.stop_reason == STOP_TARGET_REACHED
    assert page.navigations == [page_url(1), page_url(2), page_url(3), page_url(4)]
    assert len({record.id for record in run.records}) == 100
    assert run.records[-1].id == "p4-9"
    assert run.records[0].timestamp == fixed_now - timedelta(minutes=1)
    assert run.records[0].raw_time_text == "1 minutes ago"
    assert run.performance.load_time_ms == 1200.0
    assert not run.degraded
    assert recorder.of_kind(COLLECTION_FINISHED)[0].data['stop_reason'] == STOP_TARGET_REACHED


def test_short_listing_stops_without_next_page(collect, build_listing, fake_page_factory):
    run = collect(fake_page_factory(build_listing([30, 30])))

    assert run.record_count == 60
    assert run.pages_visited == 2
    assert run.stop_reason == STOP_NO_NEXT_PAGE


def test_page_ceiling_bounds_collection(collect, build_listing, fake_page_factory):
    run = collect(fake_page_factory(build_listing([30, 30, 30])), max_pages=2)

    assert run.record_count == 60
    assert run.pages_visited == 2
    assert run.stop_reason == STOP_PAGE_CEILING


def test_transient_navigation_failure_is_retried(collect, build_listing, fake_page_factory, page_url, recorder):
    page = fake_page_factory(build_listing([30]), nav_failures={page_url(1): 1})

    run = collect(page, target_count=30)

    assert run.record_count == 30
    assert page.navigations == [page_url(1), page_url(1)]
    retries = recorder.of_kind(PAGE_RETRY)
    assert len(retries) == 1
    assert retries[0].data['attempt'] == 1


def test_first_page_failure_raises_with_screenshot(collect, build_listing, fake_page_factory, page_url, recorder):
    page = fake_page_factory(build_listing([30]), nav_failures={page_url(1): 10})

    with pytest.raises(InsufficientFirstPageData) as exc_info:
        collect(page)

    assert len(page.navigations) == 3
    assert len(recorder.of_kind(PAGE_RETRY)) == 2
    assert len(page.screenshots) == 1
    assert exc_info.value.context['screenshot_path'] == page.screenshots[0]
    assert recorder.of_kind(SCREENSHOT_SAVED)


def test_first_page_without_timestamps_raises(collect, make_items, fake_listing_page, fake_page_factory,
                                              page_url, recorder):
    pages = {page_url(1): fake_listing_page(items=make_items("p1-", 5, age=None))}

    with pytest.raises(InsufficientFirstPageData):
        collect(fake_page_factory(pages))

    assert len(recorder.of_kind(RECORD_DROPPED)) == 5


def test_later_page_failure_ends_collection(collect, build_listing, fake_page_factory, page_url, recorder):
    page = fake_page_factory(build_listing([30, 30, 30]), nav_failures={page_url(2): 10})

    run = collect(page)

    assert run.record_count == 30
    assert run.stop_reason == STOP_PAGE_FAILED
    assert run.skipped_pages == (page_url(2),)
    assert run.degraded
    skipped = recorder.of_kind(PAGE_SKIPPED)
    assert len(skipped) == 1
    assert skipped[0].page_number == 2


def test_record_retry_sets_extraction_attempt(collect, build_listing, fake_page_factory, page_url, recorder):
    pages = build_listing([30])
    pages[page_url(1)].items[4].id_failures = 1

    run = collect(fake_page_factory(pages), target_count=30)

    assert run.record_count == 30
    assert run.records[4].extraction_attempt == 2
    assert all(record.extraction_attempt == 1 for index, record in enumerate(run.records) if index != 4)
    assert len(recorder.of_kind(RECORD_RETRY)) == 1


def test_record_exhausting_retries_is_dropped(collect, build_listing, fake_page_factory, page_url, recorder):
    pages = build_listing([30])
    pages[page_url(1)].items[0].id_failures = 5

    run = collect(fake_page_factory(pages), target_count=30)

    assert run.record_count == 29
    assert "p1-0" not in {record.id for record in run.records}
    assert len(recorder.of_kind(RECORD_DROPPED)) == 1


def test_duplicate_ids_are_skipped(collect, build_listing, fake_page_factory, page_url, recorder):
    pages = build_listing([30, 30])
    for item in pages[page_url(2)].items[:3]:
        item.id = item.id.replace("p2-", "p1-")

    run = collect(fake_page_factory(pages))

    assert run.record_count == 57
    assert len({record.id for record in run.records}) == 57
    assert len(recorder.of_kind(RECORD_DUPLICATE)) == 3


def test_fallback_anchor_selector_is_reported(collect, build_listing, fake_page_factory, recorder):
    pages = build_listing([30], anchor_selectors=frozenset({'tr[id^="thing"]'}))

    run = collect(fake_page_factory(pages), target_count=30)

    assert run.record_count == 30
    fallback = recorder.of_kind(READINESS_FALLBACK)
    assert len(fallback) == 1
    assert fallback[0].data['selector'] == 'tr[id^="thing"]'


def test_firefox_missing_title_rows_degrades_without_failing(collect, build_listing, fake_page_factory,
                                                             fast_timeouts, recorder):
    page = fake_page_factory(build_listing([30], title_rows=False))
    profile = FirefoxProfile(fast_timeouts, settle_delay_ms=0)

    run = collect(page, profile=profile, target_count=30)

    assert run.engine == "firefox"
    assert run.record_count == 30
    assert len(recorder.of_kind(READINESS_DEGRADED)) == 1
    assert any(selector.startswith('tr[id="p1-0"]') for selector in page.waits)


def test_titles_fall_back_to_sibling_row_and_sentinel(collect, make_items, fake_listing_page, fake_page_factory,
                                                      page_url):
    items = make_items("p1-", 3)
    items[1].title_in_sibling = True
    items[2].title = "Comments"
    page = fake_page_factory({page_url(1): fake_listing_page(items=items)})

    run = collect(page, target_count=3)

    assert run.records[0].title == "A reasonably long story title"
    assert run.records[0].source_url == "https://example.com/story"
    assert run.records[1].title == "A reasonably long story title"
    assert run.records[2].title == UNKNOWN_TITLE
    assert run.records[0].score == 10
    assert run.records[0].author == "alice"


def test_firefox_title_row_check_error_degrades_without_failing(collect, build_listing, fake_page_factory,
                                                                fast_timeouts, recorder):
    page = fake_page_factory(build_listing([30], broken=frozenset({'title_rows'})))
    profile = FirefoxProfile(fast_timeouts, settle_delay_ms=0)

    run = collect(page, profile=profile, target_count=30)

    assert run.record_count == 30
    degraded = recorder.of_kind(READINESS_DEGRADED)
    assert len(degraded) == 1
    assert "Execution context was destroyed" in degraded[0].message


def test_browser_error_on_later_page_skips_it(collect, build_listing, fake_page_factory, page_url, recorder):
    pages = build_listing([30, 30, 30])
    pages[page_url(2)].broken = frozenset({'anchors'})
    page = fake_page_factory(pages)

    run = collect(page)

    assert run.record_count == 30
    assert run.stop_reason == STOP_PAGE_FAILED
    assert run.skipped_pages == (page_url(2),)
    skipped = recorder.of_kind(PAGE_SKIPPED)
    assert len(skipped) == 1
    assert skipped[0].data['error']['error_type'] == 'PageInteractionFailure'
    assert len(page.screenshots) == 1


def test_browser_error_on_first_page_raises(collect, build_listing, fake_page_factory, page_url):
    pages = build_listing([30, 30])
    pages[page_url(1)].broken = frozenset({'anchors'})

    with pytest.raises(InsufficientFirstPageData) as exc_info:
        collect(fake_page_factory(pages))

    assert "Execution context was destroyed" in exc_info.value.context['reason']


def test_next_link_error_keeps_collected_records(collect, build_listing, fake_page_factory, page_url, recorder):
    pages = build_listing([30, 30])
    pages[page_url(1)].broken = frozenset({'next_link'})
    page = fake_page_factory(pages)

    run = collect(page)

    assert run.record_count == 30
    assert run.stop_reason == STOP_PAGE_FAILED
    assert run.skipped_pages == ()
    assert page.navigations == [page_url(1)]
    skipped = recorder.of_kind(PAGE_SKIPPED)
    assert len(skipped) == 1
    assert skipped[0].page_number == 2


def test_performance_read_error_is_not_fatal(collect, build_listing, fake_page_factory):
    run = collect(fake_page_factory(build_listing([30], broken=frozenset({'performance'}))), target_count=30)

    assert run.record_count == 30
    assert run.performance == PerformanceMetrics()


def test_engine_registry_builds_profiles(fast_timeouts):
    registry = create_default_registry()

    assert registry.list_available_engines() == ['chromium', 'firefox']
    profile = registry.get_profile('firefox', fast_timeouts, settle_delay_ms=0)
    assert isinstance(profile, FirefoxProfile)
    assert profile.settle_delay_ms == 0
    with pytest.raises(KeyError, match="Available: \\['chromium', 'firefox'\\]"):
        registry.get_profile('webkit')
