#!/usr/bin/env python3
"""
Validation runner.

Runs the collector, validator, summary and quality aggregator for every
engine x viewport combination. A failing combination becomes a failed
RunOutcome; the remaining combinations still run.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ordercheck.browser.health import check_listing_available
from ordercheck.collector import PaginatedCollector
from ordercheck.config import Config, Viewport
from ordercheck.engines.registry import EngineRegistry
from ordercheck.events import LoggingEventSink, RecordingEventSink
from ordercheck.exceptions import CollectionError
from ordercheck.metrics.quality import QualityMetricsAggregator, ExternalSignals
from ordercheck.metrics.trends import analyze_trends
from ordercheck.models.run import RunOutcome
from ordercheck.time_parser import now_utc
from ordercheck.validation.engine import SortingValidator
from ordercheck.validation.summary import summarize_run, summarize_runs

logger = logging.getLogger(__name__)

# (engine, viewport, config) -> async context manager yielding a ListingPage
SessionFactory = Callable[[str, Viewport, Config], Any]


def playwright_session_factory(engine: str, viewport: Viewport, config: Config):
    """Default session factory backed by Playwright."""
    from ordercheck.browser.playwright_page import PlaywrightSession
    return PlaywrightSession(
        engine,
        viewport,
        headless=config.browser.headless,
        slow_mo_ms=config.browser.slow_mo_ms,
        default_timeout_ms=config.timeouts_for(engine).default_ms,
        user_agent=config.browser.user_agent
    )


class ValidationRunner:
    """Runs the validation pipeline across the engine x viewport matrix."""

    def __init__(self,
                 config: Config,
                 registry: EngineRegistry,
                 validator: SortingValidator,
                 aggregator: Optional[QualityMetricsAggregator] = None,
                 session_factory: SessionFactory = playwright_session_factory,
                 clock: Callable[[], datetime] = now_utc):
        self.config = config
        self.registry = registry
        self.validator = validator
        self.aggregator = aggregator
        self._session_factory = session_factory
        self._clock = clock

    async def run_combination(self,
                              engine: str,
                              viewport: Viewport,
                              signals: Optional[ExternalSignals] = None,
                              profile_options: Optional[Dict[str, Any]] = None) -> RunOutcome:
        """Collect, validate, summarize and score one combination."""
        label = f"{engine}/{viewport.name}"
        profile = self.registry.get_profile(engine, self.config.timeouts_for(engine), **(profile_options or {}))
        recorder = RecordingEventSink(forward_to=LoggingEventSink(prefix=f"[{label}] "))

        try:
            async with self._session_factory(engine, viewport, self.config) as page:
                collector = PaginatedCollector(
                    page, profile, self.config.collection, recorder, viewport.name, self._clock
                )
                run = await collector.collect()
        except CollectionError as e:
            logger.error(f"{label} failed: {e.message}")
            return RunOutcome(
                engine=engine,
                viewport=viewport.name,
                error=e.to_dict(),
                events=[event.to_dict() for event in recorder.events]
            )
        except Exception as e:
            logger.error(f"{label} failed unexpectedly: {e}", exc_info=True)
            return RunOutcome(
                engine=engine,
                viewport=viewport.name,
                error={
                    'error_type': type(e).__name__,
                    'error_code': 'UnexpectedError',
                    'message': str(e) or type(e).__name__,
                    'context': {}
                },
                events=[event.to_dict() for event in recorder.events]
            )

        validation = self.validator.validate(run.records, generated_at=run.started_at)
        summary = summarize_run(run, validation, self.config.thresholds)

        quality = None
        if self.aggregator is not None:
            quality = self.aggregator.record(run, validation, signals)

        logger.info(f"{label}: {run.record_count} records, accuracy {validation.sorting_accuracy.accuracy}%"
                    + (f", quality {quality.overall.value} ({quality.overall.grade})" if quality else ""))

        return RunOutcome(
            engine=engine,
            viewport=viewport.name,
            run=run,
            validation=validation,
            summary=summary,
            quality=quality,
            events=[event.to_dict() for event in recorder.events]
        )

    async def run_matrix(self,
                         combinations: Optional[List[Tuple[str, Viewport]]] = None,
                         signals: Optional[ExternalSignals] = None,
                         preflight: bool = True,
                         include_records: bool = True) -> Dict[str, Any]:
        """
        Run every combination sequentially and build the report.

        Args:
            combinations: Engine/viewport pairs; defaults to the configured matrix
            signals: External security/API results applied to every run
            preflight: Check listing availability over HTTP first
            include_records: Keep the collected records in the report
        """
        combinations = combinations or self.config.matrix()
        started_at = self._clock()

        health = None
        if preflight:
            health = check_listing_available(self.config.collection.listing_url, self.config.app.health_check_timeout)
            if not health.get('available'):
                logger.warning(f"Listing pre-flight check failed: {health}")

        outcomes = []
        for engine, viewport in combinations:
            outcomes.append(await self.run_combination(engine, viewport, signals))

        report: Dict[str, Any] = {
            'generated_at': started_at.isoformat(),
            'listing_url': self.config.collection.listing_url,
            'target_count': self.config.collection.target_count,
            'preflight': health,
            'runs': [outcome.to_dict(include_records=include_records) for outcome in outcomes],
            'aggregate': summarize_runs(outcomes),
        }
        if self.aggregator is not None:
            report['quality_trends'] = analyze_trends(self.aggregator.history.entries(), self.config.thresholds)

        failed = sum(1 for outcome in outcomes if outcome.failed)
        logger.info(f"Matrix finished: {len(outcomes) - failed}/{len(outcomes)} combinations succeeded")
        return report


def write_report(report: Dict[str, Any], reports_dir: Union[str, Path], name: Optional[str] = None) -> Path:
    """Write a report as JSON via temp file and atomic replace."""
    reports_dir = Path(reports_dir)
    reports_dir.mkdir(parents=True, exist_ok=True)
    if name is None:
        stamp = now_utc().strftime('%Y%m%d-%H%M%S')
        name = f"ordercheck-report-{stamp}.json"

    path = reports_dir / name
    temp_path = path.with_suffix('.tmp')
    try:
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, ensure_ascii=False, indent=2, default=str)
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise

    logger.info(f"Report written to {path}")
    return path
