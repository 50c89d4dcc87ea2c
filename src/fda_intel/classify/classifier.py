from dataclasses import dataclass

from fda_intel.models.schemas import REGULATORY_NEWS, Classification


@dataclass(frozen=True)
class ActionType:
    name: str
    keywords: tuple[str, ...]
    severity: int


# Order matters: ties on severity are broken by position.
ACTION_TYPES: tuple[ActionType, ...] = (
    ActionType(
        "warning_letter",
        ("warning letter", "fda warns", "regulatory warning"),
        8,
    ),
    ActionType(
        "crl",
        (
            "complete response letter",
            "crl",
            "fda rejects",
            "approval denial",
            "deficiency letter",
        ),
        9,
    ),
    ActionType(
        "form_483",
        ("form 483", "483 observations", "inspection observations"),
        6,
    ),
    ActionType(
        "opdp",
        (
            "opdp",
            "untitled letter",
            "misleading claims",
            "false advertising",
            "promotional",
        ),
        5,
    ),
    ActionType(
        "import_alert",
        (
            "import alert",
            "dwpe",
            "detention without physical examination",
            "import ban",
        ),
        7,
    ),
    ActionType("consent_decree", ("consent decree", "permanent injunction"), 10),
    ActionType("recall", ("voluntary recall", "recall", "market withdrawal"), 7),
    ActionType(
        "clinical_hold",
        ("clinical hold", "study halt", "trial suspension"),
        8,
    ),
)

_BY_NAME = {action.name: action for action in ACTION_TYPES}


def classify(title: str, body: str = "") -> Classification:
    haystack = f"{title or ''} {body or ''}".lower()
    types: list[str] = []
    severity = 0
    for action in ACTION_TYPES:
        for keyword in action.keywords:
            if keyword in haystack:
                types.append(action.name)
                severity = max(severity, action.severity)
                break

    if not types:
        return Classification(types=[REGULATORY_NEWS], severity=0)
    return Classification(types=types, severity=severity)


def apply_type_hint(classification: Classification, type_hint: str) -> Classification:
    """Merge a source-level type hint (e.g. the FDA warning-letter page)."""
    action = _BY_NAME.get(type_hint)
    if action is None or action.name in classification.types:
        return classification
    types = [name for name in classification.types if name != REGULATORY_NEWS]
    types.insert(0, action.name)
    return Classification(
        types=types,
        severity=max(classification.severity, action.severity),
    )


def type_severity(type_name: str) -> int:
    action = _BY_NAME.get(type_name)
    return action.severity if action else 0


def is_action_type(type_name: str) -> bool:
    return type_name in _BY_NAME


def primary_type(types: list[str]) -> str:
    if not types:
        return REGULATORY_NEWS
    return max(types, key=lambda name: (type_severity(name), -types.index(name)))
