from enum import Enum
from typing import Iterable


class Role(str, Enum):
    HR_ADMIN = "hr_admin"
    HR_EXEC = "hr_exec"
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"
    VIEWER = "viewer"


REVIEWER_ROLES = (Role.HR_ADMIN, Role.HR_EXEC, Role.INTERVIEWER)
DECISION_MAKER_ROLES = (Role.HR_ADMIN, Role.HR_EXEC)


def has_required_role(user_roles: Iterable[Role], required: Iterable[Role]) -> bool:
    user_roles_set = {Role(r) for r in user_roles}
    required_set = {Role(r) for r in required}
    return bool(user_roles_set & required_set)
