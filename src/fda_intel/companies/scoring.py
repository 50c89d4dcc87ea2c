"""Risk and compliance scores for a company's violation history.

The two scores are separate lenses, not inverses of each other. Risk looks
at a trailing two-year window and weighs count, severity, frequency,
response time and repeated action types. Compliance looks at the trailing
six months and deducts a fixed penalty per violation. A company can see
both numbers rise at the same time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from fda_intel.dates import parse_date
from fda_intel.models.schemas import Violation

RISK_WINDOW = timedelta(days=730)
COMPLIANCE_WINDOW = timedelta(days=182)
DAYS_PER_MONTH = 30


@dataclass
class RiskWeights:
    violation_count: float = 0.3
    severity: float = 0.3
    frequency: float = 0.2
    response_time: float = 0.1
    repeat_type: float = 0.1
    multi_type_multiplier: float = 1.5
    frequent_multiplier: float = 1.3
    frequent_threshold: int = 3


def _clamp(score: float) -> int:
    return int(max(0, min(100, round(score))))


def _within(
    violations: list[Violation],
    now: datetime,
    window: timedelta,
) -> list[tuple[datetime, Violation]]:
    start = now - window
    dated: list[tuple[datetime, Violation]] = []
    for violation in violations:
        when = parse_date(violation.date)
        if when is not None and when > start:
            dated.append((when, violation))
    dated.sort(key=lambda pair: pair[0])
    return dated


def risk_score(
    violations: list[Violation],
    first_seen: str,
    now: datetime,
    response_times: list[float] | None = None,
    weights: RiskWeights | None = None,
) -> int:
    weights = weights or RiskWeights()
    recent = _within(violations, now, RISK_WINDOW)
    if not recent:
        return 0

    count = len(recent)
    count_part = min(count * 10, 30)

    avg_severity = sum(v.severity for _, v in recent) / count
    severity_part = min(avg_severity * 10, 100)

    since = parse_date(first_seen) or recent[0][0]
    months_active = max(1.0, (now - since).total_seconds() / 86400 / DAYS_PER_MONTH)
    frequency_part = min(count / months_active * 50, 20)

    response_part = 0.0
    if response_times:
        response_part = min(sum(response_times) / len(response_times), 30)

    seen_types: set[str] = set()
    repeats = 0
    for _, violation in recent:
        if violation.type in seen_types:
            repeats += 1
        seen_types.add(violation.type)
    repeat_part = min(repeats * 10, 30)

    score = (
        count_part * weights.violation_count
        + severity_part * weights.severity
        + frequency_part * weights.frequency
        + response_part * weights.response_time
        + repeat_part * weights.repeat_type
    )
    if len(seen_types) >= 2:
        score *= weights.multi_type_multiplier
    if count > weights.frequent_threshold:
        score *= weights.frequent_multiplier
    return _clamp(score)


def compliance_score(violations: list[Violation], now: datetime) -> int:
    recent = _within(violations, now, COMPLIANCE_WINDOW)
    score = 100 - len(recent) * 5
    for _, violation in recent:
        if violation.severity >= 8:
            score -= 10
        elif violation.severity >= 6:
            score -= 5
    if not recent:
        score = min(100, score + 10)
    return _clamp(score)
