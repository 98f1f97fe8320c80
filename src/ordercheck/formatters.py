#!/usr/bin/env python3
"""
Console formatting for run reports, quality history and trends.
"""

from typing import Any, Dict, List, Sequence

from ordercheck.models.metrics import QualityMetricsSnapshot, PASS

_STATUS_ICONS = {'PASS': '✅', 'FAIL': '❌', 'WARN': '⚠️'}


def _icon(status: str) -> str:
    return _STATUS_ICONS.get(status, '•')


def format_run(run: Dict[str, Any]) -> str:
    """Format one entry of a report's 'runs' list."""
    header = f"🌐 {run['engine']} / {run['viewport']}"
    if run['failed']:
        error = run.get('error') or {}
        return f"{header}\n  ❌ Failed: {error.get('message', 'unknown error')}\n"

    summary = run['summary']
    lines = [
        header,
        f"  {_icon(summary['sorting']['status'])} Sorting accuracy: {summary['sorting']['accuracy']}% "
        f"({summary['sorting']['correct_pairs']} correct / {summary['sorting']['incorrect_pairs']} incorrect)",
        f"  {_icon(summary['data_quality']['status'])} Completeness: {summary['data_quality']['completeness']:.1f}% "
        f"({summary['data_quality']['issues']} issues)",
        f"  {_icon(summary['performance']['status'])} Load time: {summary['performance']['load_time_ms']:.0f}ms",
        f"  📄 Records: {summary['test_summary']['total_records']} (pages: {run['run']['pages_visited']}, "
        f"stop: {run['run']['stop_reason']})",
    ]

    quality = run.get('quality')
    if quality:
        overall = quality['overall']
        lines.append(f"  {_icon(overall['status'])} Quality: {overall['value']} ({overall['grade']})")

    for recommendation in summary['recommendations']:
        lines.append(f"  💡 [{recommendation['priority']}] {recommendation['message']}")

    return "\n".join(lines) + "\n"


def format_report(report: Dict[str, Any]) -> str:
    """Console summary of a full matrix report."""
    lines = [
        "=== Ordering Validation Report ===",
        f"🔗 {report['listing_url']} (target {report['target_count']} records)",
        ""
    ]
    for run in report['runs']:
        lines.append(format_run(run))

    aggregate = report.get('aggregate', {})
    execution = aggregate.get('execution')
    if execution:
        lines.append(f"📊 Success rate: {execution['success_rate']:.0f}% of {execution['total_runs']} runs")
    if 'sorting_accuracy' in aggregate:
        accuracy = aggregate['sorting_accuracy']
        lines.append(f"📈 Accuracy: mean {accuracy['mean']:.2f}% (min {accuracy['min']}%, max {accuracy['max']}%)")
        load = aggregate['load_time_ms']
        lines.append(f"⏱️  Load time: mean {load['mean']:.0f}ms (std dev {load['std_dev']:.0f}ms)")

    return "\n".join(lines)


def format_history(entries: Sequence[QualityMetricsSnapshot]) -> str:
    if not entries:
        return "No quality metrics recorded yet"

    lines = [f"=== Quality History ({len(entries)} runs) ==="]
    for entry in entries:
        timestamp = entry.timestamp.strftime("%Y-%m-%d %H:%M")
        marker = '✅' if entry.overall.status == PASS else '❌'
        lines.append(f"[{timestamp}] {marker} {entry.engine}/{entry.viewport}: "
                     f"{entry.overall.value} ({entry.overall.grade})")
    return "\n".join(lines)


def format_trends(analysis: Dict[str, Any]) -> str:
    if 'message' in analysis:
        return analysis['message']

    lines = ["=== Quality Trends ==="]
    for category, data in analysis.items():
        if category == 'recommendations':
            continue
        lines.append(f"{category:>12}: {data['current']:.1f} ({data['trend']}, change {data['change']:+.1f}, "
                     f"avg {data['average']:.1f}, range {data['min']:.1f}-{data['max']:.1f})")

    recommendations: List[Dict[str, str]] = analysis.get('recommendations', [])
    if recommendations:
        lines.append("")
        for recommendation in recommendations:
            lines.append(f"💡 [{recommendation['priority']}] {recommendation['message']}")
    return "\n".join(lines)
