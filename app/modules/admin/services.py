from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Action, Principal, authorize
from app.modules.admin.schemas import AdminMetricsResponse
from app.modules.loans.services import LoanService
from app.modules.users.models import UserRole
from app.modules.users.services import UserService


class AdminService:
    """Service for admin operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_metrics(self, actor: Principal) -> AdminMetricsResponse:
        """Count users by role and applications overall"""
        authorize(actor, Action.VIEW_METRICS)

        return AdminMetricsResponse(
            customers=await UserService.count_by_role(self.db, UserRole.CUSTOMER),
            analysts=await UserService.count_by_role(self.db, UserRole.ANALYST),
            admins=await UserService.count_by_role(self.db, UserRole.ADMIN),
            loans=await LoanService(self.db).count()
        )
