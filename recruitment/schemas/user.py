from typing import List, Optional

from pydantic import BaseModel, EmailStr

from recruitment.core.roles import Role


class UserContext(BaseModel):
    user_id: str
    email: EmailStr
    roles: List[Role]
    full_name: Optional[str] = None
