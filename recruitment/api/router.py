from fastapi import APIRouter

from recruitment.api.routes import applications
from recruitment.api.routes import reports
from recruitment.api.routes import stages
from recruitment.api.routes import statuses

api_router = APIRouter()
api_router.include_router(statuses.router)
api_router.include_router(stages.router)
api_router.include_router(applications.router)
api_router.include_router(reports.router)
