import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ForbiddenError, IllegalTransitionError, NotFoundError, ValidationError
)
from app.core.permissions import Action, Principal, action_for_transition, authorize
from app.modules.loans.models import LoanApplication, LoanStatus
from app.modules.loans.risk import ApplicantRecord, evaluate

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "id": LoanApplication.id,
    "created_at": LoanApplication.created_at,
    "amount": LoanApplication.amount,
    "risk_score": LoanApplication.risk_score,
    "interest_rate": LoanApplication.interest_rate,
    "status": LoanApplication.status,
}


class LoanService:
    """
    Owns the application lifecycle.

    SUBMITTED is entered only at creation; APPROVED and REJECTED are terminal.
    Transitions are a conditional update keyed on id and current status, so
    of two competing requests only one can leave SUBMITTED.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================================
    # Lifecycle
    # ============================================================

    async def create(self, record: ApplicantRecord, owner: Principal) -> LoanApplication:
        """Score and persist a new application owned by owner"""
        authorize(owner, Action.CREATE_APPLICATION)
        self._validate(record)

        evaluation = evaluate(record)

        loan = LoanApplication(
            user_id=owner.user_id,
            full_name=record.full_name.strip(),
            amount=float(record.amount),
            tenure=int(record.tenure),
            monthly_income=record.monthly_income,
            monthly_debt=record.monthly_debt,
            credit_score=record.credit_score,
            employment_type=record.employment_type,
            purpose=record.purpose,
            dti=evaluation.dti,
            risk_score=evaluation.risk_score,
            eligibility_decision=evaluation.decision,
            interest_rate=evaluation.interest_rate,
            status=LoanStatus.SUBMITTED,
            created_at=datetime.now(timezone.utc)
        )

        self.db.add(loan)
        await self.db.commit()
        await self.db.refresh(loan)

        logger.info(
            f"Loan application {loan.id} submitted by {owner.username}: "
            f"decision={evaluation.decision.value} risk={evaluation.risk_score}"
        )
        return loan

    async def transition(self, loan_id: int, target, principal: Principal) -> LoanApplication:
        """Move a SUBMITTED application to APPROVED or REJECTED"""
        try:
            target = LoanStatus(target)
        except ValueError:
            raise IllegalTransitionError(f"Unknown target status: {target}")

        action = action_for_transition(target)
        if action is None:
            raise IllegalTransitionError(f"Cannot move an application to {target.value}")

        try:
            authorize(principal, action)
        except ForbiddenError:
            logger.warning(f"Denied {action.value} on loan {loan_id} for {principal.username}")
            raise

        result = await self.db.execute(
            update(LoanApplication)
            .where(
                LoanApplication.id == loan_id,
                LoanApplication.status == LoanStatus.SUBMITTED
            )
            .values(status=target)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            loan = await self._find(loan_id)
            if loan is None:
                raise NotFoundError("Loan not found")
            raise IllegalTransitionError(
                f"Loan {loan_id} is {loan.status.value} and can no longer change status"
            )

        await self.db.commit()

        logger.info(f"Loan {loan_id} moved to {target.value} by {principal.username}")
        return await self._find(loan_id)

    async def approve(self, loan_id: int, principal: Principal) -> LoanApplication:
        return await self.transition(loan_id, LoanStatus.APPROVED, principal)

    async def reject(self, loan_id: int, principal: Principal) -> LoanApplication:
        return await self.transition(loan_id, LoanStatus.REJECTED, principal)

    # ============================================================
    # Queries
    # ============================================================

    async def get(self, loan_id: int) -> LoanApplication:
        loan = await self._find(loan_id)
        if loan is None:
            raise NotFoundError("Loan not found")
        return loan

    async def list_loans(
        self,
        page: int = 1,
        size: int = 10,
        sort_by: str = "created_at",
        direction: str = "desc",
        status: Optional[LoanStatus] = None,
        user_id: Optional[int] = None
    ) -> Tuple[List[LoanApplication], int]:
        """Page through applications, optionally filtered by status or owner"""
        column = SORTABLE_FIELDS.get(sort_by)
        if column is None:
            raise ValidationError(f"Cannot sort by {sort_by}", fields=["sort_by"])
        if direction.lower() not in ("asc", "desc"):
            raise ValidationError("Direction must be asc or desc", fields=["direction"])

        query = select(LoanApplication)
        if status is not None:
            query = query.where(LoanApplication.status == status)
        if user_id is not None:
            query = query.where(LoanApplication.user_id == user_id)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        order = column.desc() if direction.lower() == "desc" else column.asc()
        query = query.order_by(order, LoanApplication.id.asc())
        query = query.offset((page - 1) * size).limit(size)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(LoanApplication.id)))
        return result.scalar()

    async def _find(self, loan_id: int) -> Optional[LoanApplication]:
        result = await self.db.execute(
            select(LoanApplication)
            .where(LoanApplication.id == loan_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _validate(record: ApplicantRecord) -> None:
        missing = []
        if not record.full_name or not record.full_name.strip():
            missing.append("full_name")
        if record.amount is None:
            missing.append("amount")
        if record.tenure is None:
            missing.append("tenure")

        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)
