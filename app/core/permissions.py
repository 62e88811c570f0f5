"""
Role-based authorization.

Every mutating service call consults ACTION_ROLES through authorize() with the
principal of the current request. The principal is passed explicitly; there is
no ambient security context.
"""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import ForbiddenError
from app.modules.users.models import UserRole
from app.modules.loans.models import LoanStatus


@dataclass(frozen=True)
class Principal:
    """Authenticated actor for a single request"""
    user_id: int
    username: str
    role: UserRole
    active: bool = True


class Action(str, enum.Enum):
    """Guarded operations"""
    CREATE_APPLICATION = "create_application"
    APPROVE_APPLICATION = "approve_application"
    REJECT_APPLICATION = "reject_application"
    MANAGE_USERS = "manage_users"
    VIEW_USERS = "view_users"
    VIEW_METRICS = "view_metrics"


ACTION_ROLES: Dict[Action, FrozenSet[UserRole]] = {
    Action.CREATE_APPLICATION: frozenset({UserRole.CUSTOMER, UserRole.ANALYST, UserRole.ADMIN}),
    Action.APPROVE_APPLICATION: frozenset({UserRole.ANALYST, UserRole.ADMIN}),
    Action.REJECT_APPLICATION: frozenset({UserRole.ANALYST, UserRole.ADMIN}),
    Action.MANAGE_USERS: frozenset({UserRole.ADMIN}),
    Action.VIEW_USERS: frozenset({UserRole.ADMIN}),
    Action.VIEW_METRICS: frozenset({UserRole.ADMIN}),
}

TRANSITION_ACTIONS: Dict[LoanStatus, Action] = {
    LoanStatus.APPROVED: Action.APPROVE_APPLICATION,
    LoanStatus.REJECTED: Action.REJECT_APPLICATION,
}


def action_for_transition(target: LoanStatus) -> Optional[Action]:
    """Action guarding a move to target, None if no transition leads there"""
    return TRANSITION_ACTIONS.get(target)


def is_allowed(principal: Principal, action: Action) -> bool:
    """Check the policy table for the principal's role"""
    if not principal.active:
        return False
    return principal.role in ACTION_ROLES.get(action, frozenset())


def authorize(principal: Principal, action: Action) -> None:
    """Raise ForbiddenError unless the principal may perform action"""
    if not is_allowed(principal, action):
        raise ForbiddenError(f"Role {principal.role.value} is not allowed to {action.value}")
