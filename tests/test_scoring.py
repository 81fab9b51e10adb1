import pytest
from sqlalchemy import select

from recruitment.models import RecQuestionPack
from recruitment.services import scoring
from recruitment.services.scoring import ScoringMode


def test_percentage_rounds_to_two_decimals():
    assert scoring.percentage(7, 10) == 70.0
    assert scoring.percentage(2, 3) == 66.67
    assert scoring.percentage(0, 0) == 0.0


def test_classify_test_type_is_case_insensitive():
    manual = {"psychological", "general"}
    assert scoring.classify_test_type("Psychological", manual) is ScoringMode.MANUAL
    assert scoring.classify_test_type(" general ", manual) is ScoringMode.MANUAL
    assert scoring.classify_test_type("numerical", manual) is ScoringMode.AUTO
    assert scoring.classify_test_type(None, manual) is ScoringMode.AUTO


def test_classify_test_type_uses_configured_defaults():
    assert scoring.classify_test_type("psikologi") is ScoringMode.MANUAL
    assert scoring.classify_test_type("logic") is ScoringMode.AUTO


async def test_register_question_pack_stores_scoring_mode(db_session):
    manual = await scoring.register_question_pack(db_session, name="Personality", test_type="psychological")
    auto = await scoring.register_question_pack(db_session, name="Numeracy", test_type="numerical")
    assert manual.scoring_mode == ScoringMode.MANUAL.value
    assert auto.scoring_mode == ScoringMode.AUTO.value


async def test_auto_score_is_share_of_correct_answers(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=7, wrong=3)

    result = await scoring.score_for(db_session, application)

    assert result.mode == "auto"
    assert result.value == 70.0


async def test_no_answers_scores_zero(make_application, db_session):
    application = await make_application(test_type="numerical")

    result = await scoring.score_for(db_session, application)

    assert result.value == 0.0


async def test_answer_without_choice_counts_as_incorrect(make_application, add_answers, db_session):
    application = await make_application(test_type="numerical")
    await add_answers(application, correct=1, blank=1)

    result = await scoring.score_for(db_session, application)
    summary = await scoring.summarize_answers(db_session, application)

    assert result.value == 50.0
    assert (summary.total, summary.correct, summary.unanswered) == (2, 1, 1)


async def test_manual_pack_requires_manual_score(make_application, add_answers, db_session):
    application = await make_application(test_type="psychological")
    await add_answers(application, correct=5)

    result = await scoring.score_for(db_session, application)
    summary = await scoring.summarize_answers(db_session, application)

    assert result.requires_manual
    assert result.value is None
    assert summary.scoring_mode is ScoringMode.MANUAL
    assert summary.score is None


async def test_job_period_without_pack_is_auto_scored(make_application, db_session):
    application = await make_application()

    assert await scoring.scoring_mode_for(db_session, application) is ScoringMode.AUTO


async def test_pack_without_stored_mode_is_classified_from_test_type(make_application, db_session):
    application = await make_application(test_type="numerical")
    pack = (await db_session.execute(select(RecQuestionPack))).scalars().one()
    pack.scoring_mode = None
    pack.test_type = "Psychology"
    await db_session.commit()

    assert await scoring.scoring_mode_for(db_session, application) is ScoringMode.MANUAL


@pytest.mark.parametrize("test_type", ["psychological", "psychology", "psikologi", "general"])
def test_default_manual_test_types(test_type):
    assert scoring.classify_test_type(test_type) is ScoringMode.MANUAL
