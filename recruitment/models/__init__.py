from recruitment.db.base import Base
from recruitment.models.application import RecApplication
from recruitment.models.event import RecApplicationEvent
from recruitment.models.history import RecApplicationHistory
from recruitment.models.job_period import RecJobPeriod
from recruitment.models.question_pack import RecQuestionChoice, RecQuestionPack, RecUserAnswer
from recruitment.models.report import RecApplicationReport
from recruitment.models.status import RecStatus

__all__ = [
    "Base",
    "RecApplication",
    "RecApplicationEvent",
    "RecApplicationHistory",
    "RecApplicationReport",
    "RecJobPeriod",
    "RecQuestionChoice",
    "RecQuestionPack",
    "RecStatus",
    "RecUserAnswer",
]
