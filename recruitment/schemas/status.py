from typing import Optional

from pydantic import BaseModel, ConfigDict


class StatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status_id: int
    code: str
    name: str
    stage: str
    description: Optional[str] = None
