import json

import pytest

from ordercheck.cli_router import CLIRouter
from ordercheck.commands import COMMANDS, get_command, list_commands
from ordercheck.container import Container
from ordercheck.exceptions import ConfigurationError
from ordercheck.metrics.history import MetricsHistoryRepository


@pytest.fixture
def container(runner_config, make_runner):
    runner = make_runner()
    container = Container()
    container.register_instance('config', runner_config)
    container.register_instance('runner', runner)
    container.register_instance('metrics_history', runner.aggregator.history)
    return container


@pytest.fixture
def router(container):
    return CLIRouter(container)


def test_validate_run_writes_report(router, tmp_path, capsys):
    output_dir = tmp_path / "out"

    exit_code = router.route_command(['validate', 'run', '--no-preflight', '--viewports', 'desktop',
                                      '--target', '30', '--output', str(output_dir)])

    assert exit_code == 0
    reports = list(output_dir.glob("ordercheck-report-*.json"))
    assert len(reports) == 1
    report = json.loads(reports[0].read_text(encoding='utf-8'))
    assert report['target_count'] == 30
    assert [run['viewport'] for run in report['runs']] == ['Desktop']
    assert "All runs passed" in capsys.readouterr().out


def test_validate_run_fails_when_a_combination_fails(router, tmp_path, capsys):
    exit_code = router.route_command(['validate', 'run', '--no-preflight', '--engines', 'firefox',
                                      '--viewports', 'mobile', '--output', str(tmp_path)])

    assert exit_code == 1
    assert "1 failed run(s)" in capsys.readouterr().out


def test_metrics_commands_read_history(router, tmp_path, capsys):
    router.route_command(['validate', 'run', '--no-preflight', '--output', str(tmp_path)])
    capsys.readouterr()

    assert router.route_command(['metrics', 'history', '--limit', '5']) == 0
    history_output = capsys.readouterr().out
    assert "Quality History (2 runs)" in history_output
    assert "chromium/Mobile" in history_output

    assert router.route_command(['metrics', 'trends']) == 0
    assert "Quality Trends" in capsys.readouterr().out


def test_metrics_history_when_empty(router, capsys):
    assert router.route_command(['metrics', 'history']) == 0
    assert "No quality metrics recorded yet" in capsys.readouterr().out


def test_health_check_reports_unreachable_listing(router, monkeypatch, capsys):
    monkeypatch.setattr('ordercheck.commands.health.check_listing_available',
                        lambda url, timeout: {'url': url, 'available': False, 'error': 'offline'})

    assert router.route_command(['health', 'check']) == 1
    output = capsys.readouterr().out
    assert "offline" in output
    assert "UNHEALTHY" in output


def test_missing_command_and_bad_arguments(router):
    assert router.route_command([]) == 1
    assert router.route_command(['validate']) == 1
    assert router.route_command(['validate', 'run', '--engines', 'webkit']) == 2


def test_command_registry(container):
    assert set(COMMANDS) == {'validate', 'metrics', 'health'}
    assert set(list_commands()) == set(COMMANDS)
    assert get_command('metrics', container).get_available_subcommands() == ['trends', 'history']
    with pytest.raises(ValueError):
        get_command('news', container)


def test_errors_map_to_exit_codes(container, tmp_path):
    command = get_command('metrics', container)
    blocker = tmp_path / "blocked.json"
    blocker.mkdir()
    container.register_instance('metrics_history', MetricsHistoryRepository(blocker))

    # A directory where the history file should be cannot be read, which the history treats as empty
    assert command.execute('history', None) == 0
    assert command.execute('unknown', None) == 1
    assert command.handle_error(KeyboardInterrupt()) == 130
    assert command.handle_error(FileNotFoundError("x")) == 2
    assert command.handle_error(ConfigurationError('TARGET_COUNT', 'must be at least 1')) == 22
