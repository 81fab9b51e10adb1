from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from recruitment.core.errors import FatalConfigurationError, InconsistentStateError, PipelineValidationError
from recruitment.core.stage_machine import (
    ADMIN_SELECTION,
    HIRED,
    INTERVIEW,
    PSYCHOTEST,
    REJECTED,
    Outcome,
    Stage,
)
from recruitment.models import RecApplication, RecApplicationEvent, RecApplicationHistory, RecStatus
from recruitment.services import history_ledger, stage_transitions, status_catalog
from recruitment.services.events import list_events
from recruitment.services.stage_transitions import Scheduling


async def _status_code(session, application_id: int) -> str:
    return (
        await session.execute(
            select(RecStatus.code)
            .join(RecApplication, RecApplication.status_id == RecStatus.status_id)
            .where(RecApplication.application_id == application_id)
        )
    ).scalar_one()


async def _records(session, application_id: int) -> list[tuple[str, RecApplicationHistory]]:
    rows = await session.execute(
        select(RecStatus.code, RecApplicationHistory)
        .join(RecStatus, RecStatus.status_id == RecApplicationHistory.status_id)
        .where(RecApplicationHistory.application_id == application_id)
        .order_by(RecApplicationHistory.history_id)
    )
    return [(code, record) for code, record in rows.all()]


def _assert_ledger_consistent(records: list[tuple[str, RecApplicationHistory]]) -> None:
    assert sum(1 for _, record in records if record.is_active) <= 1
    for _, record in records:
        if record.score is not None:
            assert record.completed_at is not None


async def _pass_admin(session, application, score: float = 75):
    return await stage_transitions.decide(
        session, application=application, stage="administration", outcome="pass", score=score, reviewer="hr-1"
    )


async def _pass_psychotest(session, application, *, score: float | None = None, scheduling: Scheduling | None = None):
    return await stage_transitions.decide(
        session,
        application=application,
        stage="psychological_test",
        outcome="pass",
        score=score,
        scheduling=scheduling,
        reviewer="hr-1",
    )


async def test_admin_pass_opens_psychotest(make_application, db_session):
    application = await make_application(test_type="numerical")

    result = await _pass_admin(db_session, application)

    assert result.from_status == ADMIN_SELECTION
    assert result.to_status == PSYCHOTEST
    assert result.score == 75
    records = await _records(db_session, application.application_id)
    assert [code for code, _ in records] == [ADMIN_SELECTION, PSYCHOTEST]
    closed, opened = records[0][1], records[1][1]
    assert closed.is_active is False
    assert closed.score == 75
    assert closed.reviewed_by == "hr-1"
    assert opened.is_active is True
    assert opened.history_id == result.opened_history_id
    assert await _status_code(db_session, application.application_id) == PSYCHOTEST
    _assert_ledger_consistent(records)


async def test_stage_aliases_reach_the_same_stage(make_application, db_session):
    application = await make_application()

    result = await stage_transitions.decide(
        db_session, application=application, stage="administrative_selection", outcome="passed", score=40
    )

    assert result.stage is Stage.ADMINISTRATION
    assert result.outcome is Outcome.PASS


async def test_reject_requires_notes(make_application, db_session):
    application = await make_application()

    with pytest.raises(PipelineValidationError) as excinfo:
        await stage_transitions.decide(db_session, application=application, stage="administration", outcome="reject")

    assert excinfo.value.code == "notes_required"
    assert await _status_code(db_session, application.application_id) == ADMIN_SELECTION


@pytest.mark.parametrize("score", [None, 9, 100])
async def test_admin_pass_requires_score_in_range(make_application, db_session, score):
    application = await make_application()

    with pytest.raises(PipelineValidationError):
        await _pass_admin(db_session, application, score=score)

    records = await _records(db_session, application.application_id)
    assert len(records) == 1
    assert records[0][1].is_active is True


async def test_unknown_stage_and_outcome_are_rejected(make_application, db_session):
    application = await make_application()

    with pytest.raises(PipelineValidationError):
        await stage_transitions.decide(db_session, application=application, stage="offer", outcome="pass", score=50)
    with pytest.raises(PipelineValidationError):
        await stage_transitions.decide(
            db_session, application=application, stage="administration", outcome="maybe", score=50
        )


async def test_deciding_a_stage_the_application_is_not_in_fails(make_application, db_session):
    application = await make_application()
    application_id = application.application_id

    with pytest.raises(InconsistentStateError):
        await stage_transitions.decide(
            db_session, application=application, stage="interview", outcome="pass", score=80
        )

    assert await _status_code(db_session, application_id) == ADMIN_SELECTION


async def test_reject_closes_stage_and_moves_to_rejected(make_application, db_session):
    application = await make_application()

    result = await stage_transitions.decide(
        db_session, application=application, stage="administration", outcome="reject", notes="missing documents"
    )

    assert result.to_status == REJECTED
    assert result.opened_history_id is None
    records = await _records(db_session, application.application_id)
    assert len(records) == 1
    code, record = records[0]
    assert code == ADMIN_SELECTION
    assert record.is_active is False
    assert record.notes == "missing documents"
    assert record.score is None
    assert await _status_code(db_session, application.application_id) == REJECTED


async def test_double_reject_fails_and_leaves_one_record(make_application, db_session):
    application = await make_application()
    application_id = application.application_id
    await stage_transitions.decide(
        db_session, application=application, stage="administration", outcome="reject", notes="first"
    )

    with pytest.raises(InconsistentStateError):
        await stage_transitions.decide(
            db_session, application=application, stage="administration", outcome="reject", notes="second"
        )

    records = await _records(db_session, application_id)
    assert len(records) == 1
    assert records[0][1].notes == "first"


async def test_psychotest_auto_score_is_computed(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=7, wrong=3)
    await _pass_admin(db_session, application)

    result = await _pass_psychotest(db_session, application)

    assert result.score == 70.0
    assert result.to_status == INTERVIEW
    records = await _records(db_session, application.application_id)
    assert records[1][0] == PSYCHOTEST
    assert records[1][1].score == 70.0


async def test_psychotest_reviewer_score_overrides_auto_score(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=1, wrong=1)
    await _pass_admin(db_session, application)

    result = await _pass_psychotest(db_session, application, score=88)

    assert result.score == 88


async def test_manual_psychotest_without_score_is_rejected(make_application, add_answers, db_session):
    application = await make_application(test_type="psychological")
    await add_answers(application, correct=5)
    await _pass_admin(db_session, application)
    application_id = application.application_id

    with pytest.raises(PipelineValidationError) as excinfo:
        await _pass_psychotest(db_session, application)

    assert excinfo.value.code == "manual_score_required"
    assert await _status_code(db_session, application_id) == PSYCHOTEST
    active = await history_ledger.get_active_record(db_session, application_id)
    psychotest = await status_catalog.find_by_code(db_session, PSYCHOTEST)
    assert active.status_id == psychotest.status_id
    assert active.completed_at is None


async def test_manual_psychotest_with_score_passes(make_application, db_session):
    application = await make_application(test_type="psychological")
    await _pass_admin(db_session, application)

    result = await _pass_psychotest(db_session, application, score=82)

    assert result.score == 82
    assert result.to_status == INTERVIEW


async def test_psychotest_reject_records_auto_score(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=2, wrong=8)
    await _pass_admin(db_session, application)

    result = await stage_transitions.decide(
        db_session, application=application, stage="psychotest", outcome="reject", notes="below threshold"
    )

    assert result.score == 20.0
    assert result.to_status == REJECTED


async def test_scheduling_is_carried_into_interview(make_application, db_session):
    application = await make_application(test_type="numerical")
    await _pass_admin(db_session, application)
    scheduled = datetime(2024, 5, 1, 9, 30, tzinfo=timezone(timedelta(hours=7)))

    result = await _pass_psychotest(
        db_session,
        application,
        score=70,
        scheduling=Scheduling(scheduled_at=scheduled, resource_url="https://meet.example.com/abc"),
    )

    interview = await db_session.get(RecApplicationHistory, result.opened_history_id)
    assert interview.scheduled_at == datetime(2024, 5, 1, 2, 30)
    assert interview.resource_url == "https://meet.example.com/abc"


async def test_scheduling_ignored_outside_interview(make_application, db_session):
    application = await make_application()

    result = await stage_transitions.decide(
        db_session,
        application=application,
        stage="administration",
        outcome="pass",
        score=60,
        scheduling=Scheduling(scheduled_at=datetime(2024, 5, 1, 9, 0), resource_url="https://meet.example.com/x"),
    )

    psychotest = await db_session.get(RecApplicationHistory, result.opened_history_id)
    assert psychotest.scheduled_at is None
    assert psychotest.resource_url is None


async def test_failure_after_close_rolls_everything_back(make_application, db_session, monkeypatch):
    application = await make_application()
    application_id = application.application_id
    original = await history_ledger.get_active_record(db_session, application_id)
    original_id = original.history_id

    async def broken_open_stage(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(history_ledger, "open_stage", broken_open_stage)

    with pytest.raises(RuntimeError):
        await _pass_admin(db_session, application)

    record = await db_session.get(RecApplicationHistory, original_id)
    assert record.is_active is True
    assert record.score is None
    assert record.completed_at is None
    assert await _status_code(db_session, application_id) == ADMIN_SELECTION
    events = (
        await db_session.execute(
            select(func.count())
            .select_from(RecApplicationEvent)
            .where(RecApplicationEvent.application_id == application_id)
        )
    ).scalar_one()
    assert events == 1


async def test_missing_status_row_is_fatal(make_application, db_session):
    application = await make_application()
    application_id = application.application_id
    rejected = await status_catalog.find_by_code(db_session, REJECTED)
    await db_session.delete(rejected)
    await db_session.commit()

    with pytest.raises(FatalConfigurationError):
        await stage_transitions.decide(
            db_session, application=application, stage="administration", outcome="reject", notes="no"
        )

    active = await history_ledger.get_active_record(db_session, application_id)
    assert active is not None
    assert active.completed_at is None


async def test_full_pipeline_keeps_ledger_consistent(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=9, wrong=1)

    await _pass_admin(db_session, application, score=80)
    await _pass_psychotest(db_session, application)
    result = await stage_transitions.decide(
        db_session, application=application, stage="interview", outcome="pass", score=90
    )

    assert result.to_status == INTERVIEW
    assert result.finalized is True
    assert result.overall_score == 86.67
    records = await _records(db_session, application.application_id)
    assert [code for code, _ in records] == [ADMIN_SELECTION, PSYCHOTEST, INTERVIEW]
    assert all(not record.is_active for _, record in records)
    _assert_ledger_consistent(records)


async def test_final_stage_hires_directly(make_application, db_session):
    application = await make_application()
    await _pass_admin(db_session, application)

    result = await stage_transitions.decide(
        db_session, application=application, stage="final", outcome="pass", notes="strong referral"
    )

    assert result.stage is Stage.FINAL
    assert result.to_status == HIRED
    records = await _records(db_session, application.application_id)
    active = [(code, record) for code, record in records if record.is_active]
    assert len(active) == 1
    code, record = active[0]
    assert code == HIRED
    assert record.completed_at is not None
    assert record.score is None
    _assert_ledger_consistent(records)


async def test_final_stage_twice_keeps_one_active_record(make_application, db_session):
    application = await make_application()

    await stage_transitions.decide(db_session, application=application, stage="final", outcome="pass")
    await stage_transitions.decide(db_session, application=application, stage="final", outcome="reject", notes="x")

    records = await _records(db_session, application.application_id)
    active = [code for code, record in records if record.is_active]
    assert active == [REJECTED]
    assert await _status_code(db_session, application.application_id) == REJECTED


@pytest.mark.parametrize("notes", [None, "   "])
async def test_final_stage_reject_requires_notes(make_application, db_session, notes):
    application = await make_application()
    application_id = application.application_id

    with pytest.raises(PipelineValidationError) as excinfo:
        await stage_transitions.decide(db_session, application=application, stage="final", outcome="reject", notes=notes)

    assert excinfo.value.code == "notes_required"
    records = await _records(db_session, application_id)
    assert [code for code, _ in records] == [ADMIN_SELECTION]
    assert records[0][1].is_active is True
    assert await _status_code(db_session, application_id) == ADMIN_SELECTION


async def test_legacy_approve_resolves_stage_from_status(make_application, db_session):
    application = await make_application()

    result = await stage_transitions.approve(db_session, application=application, score=55)

    assert result.stage is Stage.ADMINISTRATION
    assert result.to_status == PSYCHOTEST


async def test_legacy_reject_on_terminal_application_fails(make_application, db_session):
    application = await make_application()
    await stage_transitions.reject(db_session, application=application, notes="not a fit")

    with pytest.raises(InconsistentStateError):
        await stage_transitions.reject(db_session, application=application, notes="again")


async def test_manual_test_score_reject_fills_default_notes(make_application, db_session):
    application = await make_application(test_type="psychological")
    await _pass_admin(db_session, application)

    result = await stage_transitions.submit_manual_test_score(
        db_session, application=application, outcome="rejected", manual_score=35
    )

    assert result.to_status == REJECTED
    records = await _records(db_session, application.application_id)
    psychotest_records = [record for code, record in records if code == PSYCHOTEST]
    assert len(psychotest_records) == 1
    assert psychotest_records[0].score == 35
    assert psychotest_records[0].notes == "Rejected at psychological test stage with score: 35"


async def test_manual_test_score_is_required(make_application, db_session):
    application = await make_application(test_type="psychological")
    await _pass_admin(db_session, application)

    with pytest.raises(PipelineValidationError):
        await stage_transitions.submit_manual_test_score(
            db_session, application=application, outcome="pass", manual_score=None
        )


async def test_every_transition_writes_an_audit_event(make_application, db_session):
    application = await make_application()
    await _pass_admin(db_session, application)

    events = await list_events(db_session, application.application_id)

    assert [(event.from_status, event.to_status) for event in events] == [
        (None, ADMIN_SELECTION),
        (ADMIN_SELECTION, PSYCHOTEST),
    ]
    assert events[1].performed_by == "hr-1"
