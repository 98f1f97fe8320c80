import asyncio
import json
from datetime import timedelta

import requests

from ordercheck.browser.health import check_listing_available
from ordercheck.config import VIEWPORTS
from ordercheck.runner import write_report


def test_run_combination_produces_scored_outcome(make_runner, tmp_path):
    runner = make_runner()

    outcome = asyncio.run(runner.run_combination('chromium', VIEWPORTS['desktop']))

    assert not outcome.failed
    assert outcome.run.record_count == 60
    assert outcome.validation.sorting_accuracy.accuracy == 100.0
    assert outcome.summary['sorting']['status'] == 'PASS'
    assert outcome.quality.overall.grade in ('A+', 'A')
    assert any(event['kind'] == 'collection_finished' for event in outcome.events)
    assert len(json.loads((tmp_path / "history.json").read_text(encoding='utf-8'))) == 1


def test_failed_combination_does_not_stop_matrix(make_runner, session_factory):
    runner = make_runner()
    combinations = [('firefox', VIEWPORTS['desktop']), ('chromium', VIEWPORTS['mobile'])]

    report = asyncio.run(runner.run_matrix(combinations, preflight=False, include_records=False))

    failed, succeeded = report['runs']
    assert failed['failed'] is True
    assert failed['error']['error_type'] == 'BrowserLaunchError'
    assert succeeded['failed'] is False
    assert succeeded['viewport'] == 'Mobile'
    assert 'records' not in succeeded['run']
    assert report['aggregate']['execution']['success_rate'] == 50.0
    assert report['preflight'] is None
    assert report['quality_trends'] == {'message': 'Insufficient data for trend analysis'}
    assert [(engine, viewport) for engine, viewport, _ in session_factory.opened] == [('chromium', 'Mobile')]


def test_matrix_defaults_to_configured_combinations(make_runner):
    report = asyncio.run(make_runner(with_aggregator=False).run_matrix(preflight=False))

    assert [(run['engine'], run['viewport']) for run in report['runs']] == [
        ('chromium', 'Desktop'), ('chromium', 'Mobile')
    ]
    assert 'quality_trends' not in report
    assert report['runs'][0]['quality'] is None


def test_preflight_result_is_reported(make_runner, monkeypatch):
    monkeypatch.setattr('ordercheck.runner.check_listing_available',
                        lambda url, timeout: {'url': url, 'available': False, 'error': 'offline'})

    report = asyncio.run(make_runner().run_matrix([('chromium', VIEWPORTS['desktop'])]))

    assert report['preflight']['available'] is False
    assert report['runs'][0]['failed'] is False


def test_history_write_failure_keeps_outcome(make_runner, runner_config, tmp_path, caplog):
    blocker = tmp_path / "blocked"
    blocker.write_text("", encoding='utf-8')
    runner_config.metrics.history_file = str(blocker / "history.json")

    outcome = asyncio.run(make_runner().run_combination('chromium', VIEWPORTS['desktop']))

    assert not outcome.failed
    assert outcome.quality is not None
    assert "Could not record quality metrics" in caplog.text
    assert any(record.name == 'ordercheck.metrics.quality' and record.levelname == 'ERROR'
               for record in caplog.records)


def test_unexpected_error_becomes_failed_outcome(make_runner, caplog):
    runner = make_runner()
    combinations = [('chromium', VIEWPORTS['tablet']), ('chromium', VIEWPORTS['desktop'])]

    report = asyncio.run(runner.run_matrix(combinations, preflight=False, include_records=False))

    crashed, succeeded = report['runs']
    assert crashed['failed'] is True
    assert crashed['error']['error_type'] == 'RuntimeError'
    assert "browser has been closed" in crashed['error']['message']
    assert succeeded['failed'] is False
    assert report['aggregate']['execution']['success_rate'] == 50.0
    assert "failed unexpectedly" in caplog.text


def test_write_report(tmp_path):
    path = write_report({'runs': [], 'generated_at': 'now'}, tmp_path / "out", name="report.json")

    assert path == tmp_path / "out" / "report.json"
    assert json.loads(path.read_text(encoding='utf-8'))['runs'] == []


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.elapsed = timedelta(milliseconds=120)


def test_listing_health_check(monkeypatch):
    monkeypatch.setattr('ordercheck.browser.health.requests.head', lambda url, **kwargs: FakeResponse(200))

    status = check_listing_available("https://news.example.com/newest")

    assert status['available'] is True
    assert status['response_time_ms'] == 120.0


def test_listing_health_check_unreachable(monkeypatch):
    def _raise(url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr('ordercheck.browser.health.requests.head', _raise)

    status = check_listing_available("https://news.example.com/newest")

    assert status['available'] is False
    assert 'refused' in status['error']
