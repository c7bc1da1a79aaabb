"""
authprobe/reporting/summary.py

Terminal rendering for every run mode. Pure string builders; callers decide
where the text goes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from authprobe.engine.models import (
        CompareRunResult,
        ProbeActionResult,
        ProbeRunResult,
        SessionActionResult,
        SessionErrorsResult,
        TopicSessionResult,
    )
    from authprobe.executor.models import RunResult

ACTION_WIDTH = 28
COL_WIDTH = 12
STATUS_WIDTH = 10


def _status(outcome) -> str:
    return str(outcome.status) if outcome is not None else "ERR"


# ---------------------------------------------------------------------------
# Probe
# ---------------------------------------------------------------------------

def format_probe_header() -> str:
    return "\n".join([
        "Probe Mode",
        "",
        "Action".ljust(ACTION_WIDTH) + "Unsigned".ljust(COL_WIDTH) + "Signed",
        "-" * (ACTION_WIDTH + COL_WIDTH * 2),
    ])


def format_probe_row(result: "ProbeActionResult") -> str:
    signed = _status(result.signed) if result.signed_attempted else "N/A"
    return result.action.ljust(ACTION_WIDTH) + _status(result.unsigned).ljust(COL_WIDTH) + signed


def format_probe_summary(run: "ProbeRunResult") -> str:
    totals = run.totals()
    return "\n".join([
        "Summary:",
        f"  Total actions: {totals['total']}",
        f"  Unsigned: {totals['unsigned']['success']} success, {totals['unsigned']['failed']} failed",
        f"  Signed: {totals['signed']['success']} success, {totals['signed']['failed']} failed",
    ])


# ---------------------------------------------------------------------------
# Compare
# ---------------------------------------------------------------------------

def format_compare_result(run: "CompareRunResult") -> str:
    lines: List[str] = [
        "Action".ljust(ACTION_WIDTH) + "Allowed".ljust(STATUS_WIDTH) + "Denied".ljust(STATUS_WIDTH) + "Match",
        "-" * (ACTION_WIDTH + STATUS_WIDTH * 2 + 5),
    ]
    for c in run.comparisons:
        lines.append(
            c.action.ljust(ACTION_WIDTH)
            + _status(c.allowed).ljust(STATUS_WIDTH)
            + _status(c.denied).ljust(STATUS_WIDTH)
            + ("yes" if c.match else "NO")
        )
    totals = run.totals()
    lines += [
        "",
        "Summary:",
        f"  Total actions: {totals['total']}",
        f"  Matching status: {totals['matching']}",
        f"  Different status: {totals['different']}",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Request mutations
# ---------------------------------------------------------------------------

def format_mutations_summary(run: "RunResult") -> str:
    lines: List[str] = ["Summary:"]
    lines.append(f"  Actions tested: {len(run.actions)}")
    lines.append(f"  Mutations tested: {len(run.all_mutations)}")
    lines.append(f"  Useful mutations: {len(run.useful_mutations)}")
    for category, count in run.category_counts().items():
        if count:
            lines.append(f"    {category}: {count}")

    useful = [(a.action.name, m) for a in run.actions for m in a.useful_mutations]
    if useful:
        lines += ["", "Useful mutations:"]
        for action_name, m in useful:
            lines.append(f"  {action_name:<{ACTION_WIDTH}} {m.mutation.name:<32} {m.verdict.category.value}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------

def format_session_header() -> str:
    return "\n".join([
        "Action".ljust(ACTION_WIDTH) + "Status".ljust(STATUS_WIDTH) + "Classification",
        "-" * 52,
    ])


def format_session_row(result: "SessionActionResult") -> str:
    return result.action.ljust(ACTION_WIDTH) + str(result.status).ljust(STATUS_WIDTH) + result.classification.label


def _classification_lines(public: int, private: int, unknown: int) -> List[str]:
    lines = [f"  PUBLIC (would be allowed): {public}", f"  PRIVATE: {private}"]
    if unknown:
        lines.append(f"  UNKNOWN: {unknown}")
    return lines


def format_topic_session_summary(topic: "TopicSessionResult") -> str:
    t = topic.totals()
    return "\n".join(
        [f"Summary for {topic.topic_arn}:", f"  Actions tested: {t['total']}"]
        + _classification_lines(t["public"], t["privateDeny"] + t["privateNoPolicy"], t["unknown"])
    )


def format_session_errors_summary(result: "SessionErrorsResult") -> str:
    t = result.totals()
    per_topic = t["totalActions"] // t["totalTopics"] if t["totalTopics"] else 0
    return "\n".join(
        ["Summary:", f"  Topics tested: {t['totalTopics']}", f"  Actions per topic: {per_topic}"]
        + _classification_lines(t["publicActions"], t["privateActions"], t["unknownActions"])
    )
