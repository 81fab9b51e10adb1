import os

os.environ.setdefault("REC_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REC_ENVIRONMENT", "test")
os.environ.setdefault("REC_SEED_STATUSES_ON_STARTUP", "false")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from recruitment.models import Base, RecJobPeriod, RecQuestionChoice, RecUserAnswer
from recruitment.services import applications, scoring
from recruitment.services.status_catalog import seed_statuses


@pytest.fixture()
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        await seed_statuses(session)
        await session.commit()
        yield session
        await session.rollback()


@pytest.fixture()
def make_job_period(db_session):
    async def factory(*, test_type: str | None = None, title: str = "Data Analyst") -> RecJobPeriod:
        pack_id = None
        if test_type is not None:
            pack = await scoring.register_question_pack(db_session, name=f"{title} pack", test_type=test_type)
            pack_id = pack.question_pack_id
        period = RecJobPeriod(title=title, company_name="Acme", period_name="2024-Q1", question_pack_id=pack_id)
        db_session.add(period)
        await db_session.commit()
        return period

    return factory


@pytest.fixture()
def make_application(db_session, make_job_period):
    counter = {"next": 0}

    async def factory(*, test_type: str | None = None, job_period: RecJobPeriod | None = None):
        counter["next"] += 1
        period = job_period or await make_job_period(test_type=test_type)
        return await applications.submit_application(
            db_session,
            candidate_ref=f"cand-{counter['next']}",
            job_period_id=period.job_period_id,
        )

    return factory


@pytest.fixture()
def add_answers(db_session):
    """Record `correct` right answers, `wrong` wrong ones and `blank` answers with no choice picked."""

    async def factory(application, *, correct: int = 0, wrong: int = 0, blank: int = 0) -> None:
        question_id = 0
        for is_correct, count in ((True, correct), (False, wrong)):
            for _ in range(count):
                question_id += 1
                choice = RecQuestionChoice(question_id=question_id, choice_text="option", is_correct=is_correct)
                db_session.add(choice)
                await db_session.flush()
                db_session.add(
                    RecUserAnswer(
                        candidate_ref=application.candidate_ref,
                        application_id=application.application_id,
                        question_id=question_id,
                        choice_id=choice.choice_id,
                    )
                )
        for _ in range(blank):
            question_id += 1
            db_session.add(
                RecUserAnswer(
                    candidate_ref=application.candidate_ref,
                    application_id=application.application_id,
                    question_id=question_id,
                    answer_text=None,
                )
            )
        await db_session.commit()

    return factory
