import pytest

from recruitment.core.errors import FatalConfigurationError
from recruitment.core.stage_machine import GROUP_INTERVIEW, GROUP_PSYCHOLOGICAL, INTERVIEW, PSYCHOTEST, Stage
from recruitment.services import status_catalog


async def test_seed_is_idempotent(db_session):
    assert await status_catalog.seed_statuses(db_session) == 0
    assert len(await status_catalog.list_statuses(db_session)) == len(status_catalog.STATUS_SEED)


async def test_find_by_stage_grouping(db_session):
    psychotest = await status_catalog.find_by_stage(db_session, GROUP_PSYCHOLOGICAL)
    interview = await status_catalog.find_by_stage(db_session, GROUP_INTERVIEW)

    assert psychotest.code == PSYCHOTEST
    assert interview.code == INTERVIEW


async def test_status_for_stage_uses_stage_table(db_session):
    status = await status_catalog.status_for_stage(db_session, Stage.PSYCHOTEST)

    assert status.code == PSYCHOTEST


async def test_unconfigured_status_is_fatal(db_session):
    with pytest.raises(FatalConfigurationError):
        await status_catalog.find_by_code(db_session, "offer")
    with pytest.raises(FatalConfigurationError):
        await status_catalog.find_by_stage(db_session, "onboarding")


async def test_statuses_by_id_with_empty_ids(db_session):
    assert await status_catalog.statuses_by_id(db_session, []) == {}
