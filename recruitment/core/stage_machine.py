from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """Canonical stage identity consumed by every service; raw UI names never travel past this module."""

    ADMINISTRATION = "administration"
    PSYCHOTEST = "psychological_test"
    INTERVIEW = "interview"
    FINAL = "final"


class Outcome(str, Enum):
    PASS = "pass"
    REJECT = "reject"


class ScoreSource(str, Enum):
    # HR types the score in; required on pass.
    REVIEWER = "reviewer"
    # Scoring engine computes it, or demands a manual score for psychological packs.
    ENGINE = "engine"


# Status catalog codes.
ADMIN_SELECTION = "admin_selection"
PSYCHOTEST = "psychotest"
INTERVIEW = "interview"
ACCEPTED = "accepted"
REJECTED = "rejected"
HIRED = "hired"
COMPLETED = "completed"

# Status groupings (`RecStatus.stage`).
GROUP_ADMINISTRATIVE = "administrative_selection"
GROUP_PSYCHOLOGICAL = "psychological_test"
GROUP_INTERVIEW = "interview"
GROUP_TERMINAL = "terminal"


@dataclass(frozen=True)
class StageDescriptor:
    stage: Stage
    status_code: str
    grouping: str
    successor: Stage | None
    score_source: ScoreSource
    # Interview scheduling (meeting link, time) is carried into the successor record.
    carries_schedule: bool = False


# Ordered working stages. Adding a stage means adding a descriptor here and seeding its status.
PIPELINE: tuple[StageDescriptor, ...] = (
    StageDescriptor(
        stage=Stage.ADMINISTRATION,
        status_code=ADMIN_SELECTION,
        grouping=GROUP_ADMINISTRATIVE,
        successor=Stage.PSYCHOTEST,
        score_source=ScoreSource.REVIEWER,
    ),
    StageDescriptor(
        stage=Stage.PSYCHOTEST,
        status_code=PSYCHOTEST,
        grouping=GROUP_PSYCHOLOGICAL,
        successor=Stage.INTERVIEW,
        score_source=ScoreSource.ENGINE,
        carries_schedule=True,
    ),
    StageDescriptor(
        stage=Stage.INTERVIEW,
        status_code=INTERVIEW,
        grouping=GROUP_INTERVIEW,
        successor=None,
        score_source=ScoreSource.REVIEWER,
    ),
)

TERMINAL_STATUSES: frozenset[str] = frozenset({ACCEPTED, REJECTED, HIRED, COMPLETED})

_BY_STAGE: dict[Stage, StageDescriptor] = {item.stage: item for item in PIPELINE}
_BY_STATUS_CODE: dict[str, StageDescriptor] = {item.status_code: item for item in PIPELINE}

# Every name the admin screens, legacy routes and status codes use for a stage.
_ALIASES: dict[str, Stage] = {
    "administration": Stage.ADMINISTRATION,
    "administrative_selection": Stage.ADMINISTRATION,
    "admin_selection": Stage.ADMINISTRATION,
    "assessment": Stage.PSYCHOTEST,
    "psychological_test": Stage.PSYCHOTEST,
    "psychotest": Stage.PSYCHOTEST,
    "interview": Stage.INTERVIEW,
    "final": Stage.FINAL,
}


# Normal progression between status codes. The `final` pseudo-stage bypasses this graph.
STATUS_GRAPH: dict[str, frozenset[str]] = {
    ADMIN_SELECTION: frozenset({PSYCHOTEST, REJECTED}),
    PSYCHOTEST: frozenset({INTERVIEW, REJECTED}),
    INTERVIEW: frozenset({ACCEPTED, REJECTED, HIRED, COMPLETED}),
    ACCEPTED: frozenset(),
    REJECTED: frozenset(),
    HIRED: frozenset(),
    COMPLETED: frozenset(),
}


def normalize_stage_name(raw: str | Stage | None) -> Stage | None:
    if raw is None:
        return None
    if isinstance(raw, Stage):
        return raw
    normalized = raw.strip().lower().replace(" ", "_").replace("-", "_")
    if not normalized:
        return None
    return _ALIASES.get(normalized)


def descriptor_for(stage: Stage) -> StageDescriptor:
    try:
        return _BY_STAGE[stage]
    except KeyError:
        raise ValueError(f"'{stage.value}' is not a working stage") from None


def is_working_stage(stage: Stage | None) -> bool:
    return stage in _BY_STAGE


def stage_for_status_code(code: str | None) -> Stage | None:
    """Reverse map used by the legacy approve/reject entry points."""
    if code is None:
        return None
    descriptor = _BY_STATUS_CODE.get(code)
    return descriptor.stage if descriptor else None


def is_terminal_status(code: str | None) -> bool:
    return code in TERMINAL_STATUSES


def pipeline_status_codes() -> tuple[str, ...]:
    return tuple(item.status_code for item in PIPELINE)


def can_transition(from_code: str | None, to_code: str | None) -> bool:
    if to_code is None or to_code not in STATUS_GRAPH:
        return False
    # Fresh applications enter at the first stage only.
    if from_code is None:
        return to_code == PIPELINE[0].status_code
    if from_code not in STATUS_GRAPH or from_code == to_code:
        return False
    return to_code in STATUS_GRAPH[from_code]
