import os
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from recruitment.core.paths import resolve_repo_path


def _env_files() -> list[str]:
    env = os.getenv("REC_ENVIRONMENT", "").strip().lower()
    files = [str(resolve_repo_path(".env"))]
    if env and env != "development":
        files.append(str(resolve_repo_path(f".env.{env}")))
    else:
        files.append(str(resolve_repo_path(".env.local")))
    return files


class Settings(BaseSettings):
    app_name: str = "Recruitment Pipeline"
    environment: str = "development"

    database_url: str
    database_echo: bool = False

    auth_mode: Literal["dev"] = "dev"

    # HR-entered scores on administration/interview passes.
    stage_score_min: float = 10
    stage_score_max: float = 99
    # Human-entered psychological test scores.
    manual_score_min: float = 0
    manual_score_max: float = 100
    manual_scoring_test_types: str = Field(default="psychological,psychology,psikologi,general")

    auto_create_schema: bool = False
    seed_statuses_on_startup: bool = True
    expose_error_detail: bool = True

    model_config = SettingsConfigDict(env_prefix="REC_", env_file=_env_files(), extra="ignore")

    @field_validator("manual_scoring_test_types")
    @classmethod
    def _normalize_test_types(cls, value: str) -> str:
        return ",".join(part.strip().lower() for part in value.split(",") if part.strip())

    @property
    def manual_test_types(self) -> frozenset[str]:
        return frozenset(self.manual_scoring_test_types.split(",")) if self.manual_scoring_test_types else frozenset()

    @property
    def show_error_detail(self) -> bool:
        return self.expose_error_detail and self.environment != "production"


settings = Settings()
