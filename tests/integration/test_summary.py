from ordercheck.config import ThresholdConfig
from ordercheck.models.run import RunOutcome, STOP_NO_NEXT_PAGE
from ordercheck.validation.engine import SortingValidator
from ordercheck.validation.summary import run_checks, summarize_run, summarize_runs


def _summarize(run, thresholds=None):
    validation = SortingValidator().validate(run.records, generated_at=run.started_at)
    return summarize_run(run, validation, thresholds or ThresholdConfig()), validation


def test_clean_run_passes_everything(make_run, records_from_minutes):
    summary, _ = _summarize(make_run(records_from_minutes([1, 2, 3, 4])))

    assert summary['sorting']['status'] == 'PASS'
    assert summary['data_quality']['status'] == 'PASS'
    assert summary['performance']['status'] == 'PASS'
    assert all(check['passed'] for check in summary['checks'])
    assert summary['recommendations'] == [{'type': 'success', 'message': 'All checks passed', 'priority': 'info'}]


def test_threshold_is_policy_not_measurement(make_run, records_from_minutes):
    # Accuracy 33.33%: passes the default 20% gate but fails a stricter one
    run = make_run(records_from_minutes([3, 2, 1, 4]))

    default_summary, validation = _summarize(run)
    strict_summary, _ = _summarize(run, ThresholdConfig(sorting_accuracy=50))

    assert validation.sorting_accuracy.accuracy == 33.33
    assert default_summary['sorting']['status'] == 'PASS'
    assert strict_summary['sorting']['status'] == 'FAIL'
    assert default_summary['recommendations'][0]['type'] == 'info'
    assert strict_summary['recommendations'][0]['type'] == 'critical'


def test_slow_incomplete_short_run_collects_recommendations(make_run, make_record):
    records = [make_record(str(i), i, author=None) for i in range(1, 6)]
    run = make_run(records, load_time_ms=7000, target_count=100, stop_reason=STOP_NO_NEXT_PAGE)

    summary, _ = _summarize(run)

    assert summary['performance']['status'] == 'WARN'
    assert summary['data_quality']['status'] == 'WARN'
    assert summary['test_summary']['degraded'] is True
    types = [recommendation['type'] for recommendation in summary['recommendations']]
    assert types == ['warning', 'performance', 'warning']


def test_consecutive_error_gate(make_run, records_from_minutes):
    run = make_run(records_from_minutes([9, 8, 7, 6, 5, 4]))
    validation = SortingValidator().validate(run.records)

    checks = {check.name: check for check in run_checks(run, validation, ThresholdConfig())}

    assert validation.anomalies.patterns.consecutive_errors == 5
    assert not checks['consecutive_errors'].passed
    assert not checks['sorting_accuracy'].passed
    assert checks['timestamps_present'].passed


def test_aggregate_across_runs(make_run, records_from_minutes):
    validator = SortingValidator()
    outcomes = []
    for load_time in (1000.0, 3000.0):
        run = make_run(records_from_minutes([1, 2, 3]), load_time_ms=load_time)
        outcomes.append(RunOutcome('chromium', 'Desktop', run=run, validation=validator.validate(run.records)))
    outcomes.append(RunOutcome('firefox', 'Mobile', error={'message': 'launch failed'}))

    aggregate = summarize_runs(outcomes)

    assert aggregate['execution']['total_runs'] == 3
    assert round(aggregate['execution']['success_rate'], 2) == 66.67
    assert aggregate['load_time_ms'] == {'mean': 2000.0, 'min': 1000.0, 'max': 3000.0, 'std_dev': 1000.0}
    assert aggregate['sorting_accuracy']['mean'] == 100.0
    assert aggregate['average_record_count'] == 3.0


def test_aggregate_without_successful_runs():
    aggregate = summarize_runs([RunOutcome('chromium', 'Desktop', error={'message': 'boom'})])

    assert aggregate['execution']['failure_rate'] == 100.0
    assert 'load_time_ms' not in aggregate
    assert summarize_runs([]) == {'error': 'No runs to analyze'}
