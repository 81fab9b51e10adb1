from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.core.errors import PipelineValidationError
from recruitment.core.stage_machine import ACCEPTED, INTERVIEW, REJECTED, pipeline_status_codes
from recruitment.models.application import RecApplication
from recruitment.models.report import RecApplicationReport
from recruitment.services import history_ledger, status_catalog
from recruitment.services.events import log_event
from recruitment.services.transaction import run_in_transaction

logger = logging.getLogger("rec.stage")


class ReportDecision(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


_DECISION_STATUS = {
    ReportDecision.ACCEPTED: ACCEPTED,
    ReportDecision.REJECTED: REJECTED,
}


@dataclass(frozen=True)
class FinalizeResult:
    application_id: int
    finalized: bool
    overall_score: float | None = None
    stage_scores: dict[str, float | None] = field(default_factory=dict)

    @property
    def missing_stages(self) -> tuple[str, ...]:
        return tuple(code for code, score in self.stage_scores.items() if score is None)


def overall_score(scores: Iterable[float]) -> float:
    values = [float(score) for score in scores]
    if not values:
        raise ValueError("overall score needs at least one stage score")
    return round(sum(values) / len(values), 2)


async def get_report(session: AsyncSession, application_id: int) -> RecApplicationReport | None:
    return (
        await session.execute(
            select(RecApplicationReport).where(RecApplicationReport.application_id == application_id).limit(1)
        )
    ).scalars().first()


async def collect_stage_scores(session: AsyncSession, application_id: int) -> dict[str, float | None]:
    scores: dict[str, float | None] = {}
    for code in pipeline_status_codes():
        record = await history_ledger.latest_scored_record(session, application_id, code)
        scores[code] = record.score if record else None
    return scores


async def aggregate_scores(session: AsyncSession, *, application: RecApplication) -> FinalizeResult:
    """
    Open (or reset) the pending report once every stage has a closed, scored record.

    Runs inside the caller's transaction. The application keeps its interview status;
    only the report decision moves it to a terminal status.
    """
    application_id = application.application_id
    scores = await collect_stage_scores(session, application_id)
    if any(score is None for score in scores.values()):
        result = FinalizeResult(application_id=application_id, finalized=False, stage_scores=scores)
        logger.info(
            "final_decision_waiting_for_scores",
            extra={"application_id": application_id, "missing": list(result.missing_stages)},
        )
        return result

    overall = overall_score(score for score in scores.values() if score is not None)
    report = await get_report(session, application_id)
    if report is None:
        report = RecApplicationReport(application_id=application_id)
        session.add(report)
    report.overall_score = overall
    report.final_decision = ReportDecision.PENDING.value
    report.final_notes = None
    report.decision_made_by = None
    report.decision_made_at = None
    report.updated_at = utcnow_naive()
    await session.flush()

    logger.info("final_decision_pending", extra={"application_id": application_id, "overall_score": overall})
    return FinalizeResult(
        application_id=application_id,
        finalized=True,
        overall_score=overall,
        stage_scores=scores,
    )


async def try_finalize(session: AsyncSession, *, application: RecApplication) -> FinalizeResult:
    """Re-run aggregation on its own, e.g. after a missing stage score arrived out of band."""
    application_id = application.application_id

    async def work() -> FinalizeResult:
        current = await status_catalog.get_status(session, application.status_id)
        if current.code != INTERVIEW:
            raise PipelineValidationError(
                f"Application is in '{current.code}', not waiting for a final decision.",
                code="not_awaiting_final_decision",
            )
        if await history_ledger.get_active_record(session, application_id) is not None:
            raise PipelineValidationError("Interview has not been decided yet.", code="interview_pending")
        return await aggregate_scores(session, application=application)

    return await run_in_transaction(session, action="try_finalize", application_id=application_id, work=work)


async def finalize_decision(
    session: AsyncSession,
    *,
    application: RecApplication,
    decision: ReportDecision | str,
    notes: str | None = None,
    reviewer: str | None = None,
) -> RecApplicationReport:
    """HR's accept/reject on a pending report. Writes no history: the interview record stays closed."""
    try:
        decision = ReportDecision(decision)
    except ValueError:
        raise PipelineValidationError(f"Unknown final decision '{decision}'.") from None
    if decision is ReportDecision.PENDING:
        raise PipelineValidationError("Final decision must be 'accepted' or 'rejected'.")

    application_id = application.application_id

    async def work() -> RecApplicationReport:
        report = await get_report(session, application_id)
        if report is None or report.overall_score is None:
            raise PipelineValidationError(
                "Application has no report awaiting a final decision.", code="report_not_ready"
            )
        target = await status_catalog.find_by_code(session, _DECISION_STATUS[decision])
        current = await status_catalog.get_status(session, application.status_id)

        now = utcnow_naive()
        previous_decision = report.final_decision
        report.final_decision = decision.value
        report.final_notes = notes
        report.decision_made_by = reviewer
        report.decision_made_at = now
        report.updated_at = now

        application.status_id = target.status_id
        application.updated_at = now

        await log_event(
            session,
            application_id=application_id,
            action_type="report_decision",
            from_status=current.code,
            to_status=target.code,
            performed_by=reviewer,
            meta_json={
                "previous_decision": previous_decision,
                "decision": decision.value,
                "overall_score": report.overall_score,
                "note": notes,
            },
        )
        return report

    return await run_in_transaction(session, action="finalize_decision", application_id=application_id, work=work)


async def list_reports(
    session: AsyncSession, *, decision: ReportDecision | None = None
) -> list[tuple[RecApplicationReport, RecApplication]]:
    stmt = (
        select(RecApplicationReport, RecApplication)
        .join(RecApplication, RecApplication.application_id == RecApplicationReport.application_id)
        .where(RecApplicationReport.overall_score.is_not(None))
        .order_by(RecApplicationReport.updated_at.desc(), RecApplicationReport.report_id.desc())
    )
    if decision is not None:
        stmt = stmt.where(RecApplicationReport.final_decision == decision.value)
    return [(report, application) for report, application in (await session.execute(stmt)).all()]
