from datetime import datetime, timezone

from fda_intel.companies.scoring import RiskWeights, compliance_score, risk_score
from fda_intel.models.schemas import Violation

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _violation(type_name: str, severity: int, date: str, index: int = 0) -> Violation:
    return Violation(
        id=f"v{index}",
        type=type_name,
        date=date,
        title=f"{type_name} {index}",
        link=f"https://example.com/{index}",
        source="Test",
        summary="",
        severity=severity,
    )


def test_empty_history_scores() -> None:
    assert risk_score([], "", NOW) == 0
    assert compliance_score([], NOW) == 100


def test_single_recent_crl() -> None:
    violations = [_violation("crl", 9, "2023-12-01T00:00:00+00:00")]

    assert risk_score(violations, "2023-12-01T00:00:00+00:00", NOW) == 34
    assert compliance_score(violations, NOW) == 85


def test_multiple_types_apply_multiplier() -> None:
    violations = [
        _violation("form_483", 6, "2023-12-10T00:00:00+00:00", 1),
        _violation("crl", 9, "2023-12-01T00:00:00+00:00", 2),
    ]

    assert risk_score(violations, "2023-12-01T00:00:00+00:00", NOW) == 49
    assert compliance_score(violations, NOW) == 75


def test_violations_outside_windows_are_ignored() -> None:
    violations = [_violation("warning_letter", 8, "2020-06-01T00:00:00+00:00")]

    assert risk_score(violations, "2020-06-01T00:00:00+00:00", NOW) == 0
    assert compliance_score(violations, NOW) == 100


def test_scores_stay_within_bounds() -> None:
    violations = [
        _violation("consent_decree", 10, f"2023-12-{day:02d}T00:00:00+00:00", day)
        for day in range(1, 29)
    ]
    heavy = RiskWeights(violation_count=5.0, severity=5.0)

    assert 0 <= risk_score(violations, "2023-12-01", NOW, [90.0], heavy) <= 100
    assert risk_score(violations, "2023-12-01", NOW, [90.0], heavy) == 100
    assert compliance_score(violations, NOW) == 0
