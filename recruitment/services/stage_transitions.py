from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.config import settings
from recruitment.core.datetime_utils import to_utc_naive, utcnow_naive
from recruitment.core.errors import InconsistentStateError, PipelineValidationError
from recruitment.core.stage_machine import (
    HIRED,
    REJECTED,
    Outcome,
    ScoreSource,
    Stage,
    StageDescriptor,
    can_transition,
    descriptor_for,
    is_terminal_status,
    normalize_stage_name,
    stage_for_status_code,
)
from recruitment.models.application import RecApplication
from recruitment.models.history import RecApplicationHistory
from recruitment.models.status import RecStatus
from recruitment.services import final_decision, history_ledger, scoring, status_catalog
from recruitment.services.events import log_event
from recruitment.services.transaction import run_in_transaction

logger = logging.getLogger("rec.stage")


@dataclass(frozen=True)
class Scheduling:
    scheduled_at: datetime | None = None
    resource_url: str | None = None


@dataclass(frozen=True)
class StageTransitionResult:
    application_id: int
    stage: Stage
    outcome: Outcome
    from_status: str
    to_status: str
    closed_history_id: int | None
    opened_history_id: int | None = None
    score: float | None = None
    finalized: bool = False
    overall_score: float | None = None


def _parse_stage(raw: Stage | str | None) -> Stage:
    stage = normalize_stage_name(raw)
    if stage is None:
        raise PipelineValidationError(f"Invalid stage: {raw}", code="invalid_stage")
    return stage


def _parse_outcome(raw: Outcome | str | None) -> Outcome:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise PipelineValidationError("Outcome is required.", code="outcome_required")
    if isinstance(raw, Outcome):
        return raw
    value = raw.strip().lower()
    # UI sends passed/rejected.
    value = {"passed": "pass", "rejected": "reject"}.get(value, value)
    try:
        return Outcome(value)
    except ValueError:
        raise PipelineValidationError(f"Unknown outcome '{raw}'.", code="invalid_outcome") from None


def score_bounds(descriptor: StageDescriptor) -> tuple[float, float]:
    if descriptor.score_source is ScoreSource.REVIEWER:
        return settings.stage_score_min, settings.stage_score_max
    return settings.manual_score_min, settings.manual_score_max


def validate_decision(
    descriptor: StageDescriptor,
    outcome: Outcome,
    *,
    score: float | None = None,
    notes: str | None = None,
) -> None:
    if outcome is Outcome.REJECT and not (notes or "").strip():
        raise PipelineValidationError("Notes are required when rejecting.", code="notes_required")

    low, high = score_bounds(descriptor)
    if score is None:
        if outcome is Outcome.PASS and descriptor.score_source is ScoreSource.REVIEWER:
            raise PipelineValidationError(
                f"A score between {low:g} and {high:g} is required to pass {descriptor.stage.value}.",
                code="score_required",
            )
        return
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
        raise PipelineValidationError("Score must be a number.", code="invalid_score")
    if not low <= score <= high:
        raise PipelineValidationError(
            f"Score must be between {low:g} and {high:g}.", code="score_out_of_range"
        )


async def _current_status(session: AsyncSession, application: RecApplication) -> RecStatus:
    return await status_catalog.get_status(session, application.status_id)


async def _move_pointer(
    session: AsyncSession,
    application: RecApplication,
    *,
    from_code: str,
    target: RecStatus,
    now: datetime,
    bypass_graph: bool = False,
) -> None:
    if not bypass_graph and not can_transition(from_code, target.code):
        raise InconsistentStateError(f"Invalid status transition from '{from_code}' to '{target.code}'.")
    application.status_id = target.status_id
    application.updated_at = now


async def _effective_pass_score(
    session: AsyncSession,
    application: RecApplication,
    descriptor: StageDescriptor,
    score: float | None,
) -> float | None:
    if descriptor.score_source is ScoreSource.REVIEWER:
        return score
    result = await scoring.score_for(session, application)
    if result.requires_manual:
        if score is None:
            raise PipelineValidationError(
                "This is a psychological test that requires manual scoring. "
                "Evaluate the exported answers and resubmit with a score.",
                code="manual_score_required",
            )
        return score
    # A score typed in by HR overrides the computed one.
    return score if score is not None else result.value


async def _effective_reject_score(
    session: AsyncSession,
    application: RecApplication,
    descriptor: StageDescriptor,
    score: float | None,
) -> float | None:
    if score is not None or descriptor.score_source is not ScoreSource.ENGINE:
        return score
    result = await scoring.score_for(session, application)
    return None if result.requires_manual else result.value


async def _sweep_strays(session: AsyncSession, application_id: int) -> None:
    stray = await history_ledger.deactivate_all_except(session, application_id)
    if stray:
        logger.warning("stray_active_records_deactivated", extra={"application_id": application_id, "count": stray})


async def _load_active_record(
    session: AsyncSession, application: RecApplication, stage_status: RecStatus
) -> RecApplicationHistory:
    record = await history_ledger.get_active_record_for_status(
        session, application.application_id, stage_status.status_id
    )
    if record is None:
        raise InconsistentStateError(
            f"No active history found for stage '{stage_status.code}' on application {application.application_id}."
        )
    return record


async def _apply_decision(
    session: AsyncSession,
    *,
    application: RecApplication,
    descriptor: StageDescriptor,
    outcome: Outcome,
    score: float | None,
    notes: str | None,
    scheduling: Scheduling | None,
    reviewer: str | None,
) -> StageTransitionResult:
    application_id = application.application_id
    stage_status = await status_catalog.find_by_code(session, descriptor.status_code)
    record = await _load_active_record(session, application, stage_status)
    current = await _current_status(session, application)
    if current.status_id != stage_status.status_id:
        raise InconsistentStateError(
            f"Application status '{current.code}' does not match active stage '{stage_status.code}'."
        )

    now = utcnow_naive()

    if outcome is Outcome.REJECT:
        rejected = await status_catalog.find_by_code(session, REJECTED)
        effective = await _effective_reject_score(session, application, descriptor, score)
        await history_ledger.close_stage(session, record, reviewer=reviewer, score=effective, notes=notes, now=now)
        await _sweep_strays(session, application_id)
        await _move_pointer(session, application, from_code=current.code, target=rejected, now=now)
        await log_event(
            session,
            application_id=application_id,
            action_type="stage_change",
            from_status=current.code,
            to_status=rejected.code,
            performed_by=reviewer,
            meta_json={"stage": descriptor.stage.value, "outcome": outcome.value, "score": effective, "note": notes},
        )
        return StageTransitionResult(
            application_id=application_id,
            stage=descriptor.stage,
            outcome=outcome,
            from_status=current.code,
            to_status=rejected.code,
            closed_history_id=record.history_id,
            score=effective,
        )

    effective = await _effective_pass_score(session, application, descriptor, score)
    await history_ledger.close_stage(session, record, reviewer=reviewer, score=effective, notes=notes, now=now)

    if descriptor.successor is None:
        # Last working stage: the aggregator decides whether a final decision can open.
        outcome_result = await final_decision.aggregate_scores(session, application=application)
        await log_event(
            session,
            application_id=application_id,
            action_type="stage_change",
            from_status=current.code,
            to_status=current.code,
            performed_by=reviewer,
            meta_json={
                "stage": descriptor.stage.value,
                "outcome": outcome.value,
                "score": effective,
                "note": notes,
                "finalized": outcome_result.finalized,
                "overall_score": outcome_result.overall_score,
            },
        )
        return StageTransitionResult(
            application_id=application_id,
            stage=descriptor.stage,
            outcome=outcome,
            from_status=current.code,
            to_status=current.code,
            closed_history_id=record.history_id,
            score=effective,
            finalized=outcome_result.finalized,
            overall_score=outcome_result.overall_score,
        )

    next_status = await status_catalog.status_for_stage(session, descriptor.successor)
    await _sweep_strays(session, application_id)
    schedule = scheduling if (scheduling and descriptor.carries_schedule) else Scheduling()
    opened = await history_ledger.open_stage(
        session,
        application_id=application_id,
        status_id=next_status.status_id,
        scheduled_at=to_utc_naive(schedule.scheduled_at),
        resource_url=schedule.resource_url,
        now=now,
    )
    await _move_pointer(session, application, from_code=current.code, target=next_status, now=now)
    await log_event(
        session,
        application_id=application_id,
        action_type="stage_change",
        from_status=current.code,
        to_status=next_status.code,
        performed_by=reviewer,
        meta_json={
            "stage": descriptor.stage.value,
            "outcome": outcome.value,
            "score": effective,
            "note": notes,
            "scheduled_at": opened.scheduled_at,
            "resource_url": opened.resource_url,
        },
    )
    return StageTransitionResult(
        application_id=application_id,
        stage=descriptor.stage,
        outcome=outcome,
        from_status=current.code,
        to_status=next_status.code,
        closed_history_id=record.history_id,
        opened_history_id=opened.history_id,
        score=effective,
    )


async def decide(
    session: AsyncSession,
    *,
    application: RecApplication,
    stage: Stage | str,
    outcome: Outcome | str,
    score: float | None = None,
    notes: str | None = None,
    scheduling: Scheduling | None = None,
    reviewer: str | None = None,
) -> StageTransitionResult:
    """
    Judge the application's current stage and move it along the pipeline.

    Validation happens before anything is written. Everything after it runs in a
    single transaction: any failure rolls back every ledger and status write.
    """
    normalized_stage = _parse_stage(stage)
    parsed_outcome = _parse_outcome(outcome)
    if normalized_stage is Stage.FINAL:
        return await finalize_stage(
            session, application=application, outcome=parsed_outcome, notes=notes, reviewer=reviewer
        )

    descriptor = descriptor_for(normalized_stage)
    validate_decision(descriptor, parsed_outcome, score=score, notes=notes)

    async def work() -> StageTransitionResult:
        return await _apply_decision(
            session,
            application=application,
            descriptor=descriptor,
            outcome=parsed_outcome,
            score=score,
            notes=notes,
            scheduling=scheduling,
            reviewer=reviewer,
        )

    return await run_in_transaction(
        session, action=f"decide:{normalized_stage.value}", application_id=application.application_id, work=work
    )


async def finalize_stage(
    session: AsyncSession,
    *,
    application: RecApplication,
    outcome: Outcome | str,
    notes: str | None = None,
    reviewer: str | None = None,
) -> StageTransitionResult:
    """The `final` pseudo-stage: hire or reject directly, outside the three-stage sequence."""
    parsed_outcome = _parse_outcome(outcome)
    if parsed_outcome is Outcome.REJECT and not (notes or "").strip():
        raise PipelineValidationError("Notes are required when rejecting.", code="notes_required")
    application_id = application.application_id

    async def work() -> StageTransitionResult:
        target = await status_catalog.find_by_code(session, HIRED if parsed_outcome is Outcome.PASS else REJECTED)
        current = await _current_status(session, application)
        now = utcnow_naive()
        # Includes a previous hired/rejected row, so finalizing twice leaves one active record.
        await history_ledger.deactivate_all_except(session, application_id)
        record = await history_ledger.record_terminal(
            session,
            application_id=application_id,
            status_id=target.status_id,
            reviewer=reviewer,
            notes=notes,
            now=now,
        )
        await _move_pointer(session, application, from_code=current.code, target=target, now=now, bypass_graph=True)
        await log_event(
            session,
            application_id=application_id,
            action_type="final_decision",
            from_status=current.code,
            to_status=target.code,
            performed_by=reviewer,
            meta_json={"stage": Stage.FINAL.value, "outcome": parsed_outcome.value, "note": notes},
        )
        return StageTransitionResult(
            application_id=application_id,
            stage=Stage.FINAL,
            outcome=parsed_outcome,
            from_status=current.code,
            to_status=target.code,
            closed_history_id=None,
            opened_history_id=record.history_id,
        )

    return await run_in_transaction(session, action="decide:final", application_id=application_id, work=work)


async def stage_from_status(session: AsyncSession, application: RecApplication) -> Stage:
    """Reverse map for legacy routes that only know the application, not the stage."""
    current = await _current_status(session, application)
    if is_terminal_status(current.code):
        raise InconsistentStateError(f"Application is already '{current.code}'.")
    return stage_for_status_code(current.code) or Stage.ADMINISTRATION


async def approve(
    session: AsyncSession,
    *,
    application: RecApplication,
    score: float | None = None,
    notes: str | None = None,
    scheduling: Scheduling | None = None,
    reviewer: str | None = None,
) -> StageTransitionResult:
    stage = await stage_from_status(session, application)
    return await decide(
        session,
        application=application,
        stage=stage,
        outcome=Outcome.PASS,
        score=score,
        notes=notes,
        scheduling=scheduling,
        reviewer=reviewer,
    )


async def reject(
    session: AsyncSession,
    *,
    application: RecApplication,
    notes: str | None = None,
    reviewer: str | None = None,
) -> StageTransitionResult:
    stage = await stage_from_status(session, application)
    return await decide(
        session,
        application=application,
        stage=stage,
        outcome=Outcome.REJECT,
        notes=notes,
        reviewer=reviewer,
    )


async def submit_manual_test_score(
    session: AsyncSession,
    *,
    application: RecApplication,
    outcome: Outcome | str,
    manual_score: float | None,
    notes: str | None = None,
    scheduling: Scheduling | None = None,
    reviewer: str | None = None,
) -> StageTransitionResult:
    """HR scores a psychological test by hand and passes or rejects it in one step."""
    if manual_score is None:
        raise PipelineValidationError("A manual score is required.", code="manual_score_required")
    parsed_outcome = _parse_outcome(outcome)
    if parsed_outcome is Outcome.REJECT and not (notes or "").strip():
        notes = f"Rejected at psychological test stage with score: {manual_score:g}"
    return await decide(
        session,
        application=application,
        stage=Stage.PSYCHOTEST,
        outcome=parsed_outcome,
        score=manual_score,
        notes=notes,
        scheduling=scheduling,
        reviewer=reviewer,
    )

