"""
Integration tests for the loan application lifecycle
"""
import asyncio
from dataclasses import replace

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import Base
from app.core.exceptions import (
    ForbiddenError, IllegalTransitionError, NotFoundError, ValidationError
)
from app.core.permissions import Principal
from app.modules.loans.models import EligibilityDecision, LoanApplication, LoanStatus
from app.modules.loans.risk import ApplicantRecord
from app.modules.loans.services import LoanService
from app.modules.users.models import User, UserRole


class TestLoanCreation:
    """Tests for create"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_stamps_analytics(self, db_session, customer, applicant):
        """Computed fields, status, timestamp and owner are set"""
        service = LoanService(db_session)

        loan = await service.create(applicant, customer)

        assert loan.id is not None
        assert loan.status == LoanStatus.SUBMITTED
        assert loan.user_id == customer.user_id
        assert loan.created_at is not None
        assert loan.dti == pytest.approx(0.15)
        assert loan.risk_score == 20
        assert loan.eligibility_decision == EligibilityDecision.ELIGIBLE
        assert loan.interest_rate == 9.5
        assert loan.full_name == "Carla Customer"
        assert loan.purpose == "HOME"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_tolerates_missing_numbers(self, db_session, customer):
        """Absent financials score as zero instead of failing"""
        service = LoanService(db_session)

        loan = await service.create(
            ApplicantRecord(full_name="Nobody", amount=1000.0, tenure=12),
            customer
        )

        assert loan.dti == 1.0
        assert loan.risk_score == 100
        assert loan.eligibility_decision == EligibilityDecision.REJECT
        assert loan.monthly_income is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_requires_core_fields(self, db_session, customer):
        """Missing name, amount and tenure are reported together"""
        service = LoanService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.create(ApplicantRecord(full_name="   "), customer)

        assert exc_info.value.fields == ["full_name", "amount", "tenure"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_inactive_principal_cannot_apply(self, db_session, customer, applicant):
        """A deactivated account is denied by the gate"""
        service = LoanService(db_session)
        inactive = replace(customer, active=False)

        with pytest.raises(ForbiddenError):
            await service.create(applicant, inactive)


class TestLoanTransitions:
    """Tests for the SUBMITTED -> APPROVED / REJECTED state machine"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [LoanStatus.APPROVED, LoanStatus.REJECTED])
    async def test_analyst_decides(self, db_session, analyst, submitted_loan, target):
        """An analyst moves a submitted loan to a terminal state"""
        service = LoanService(db_session)

        loan = await service.transition(submitted_loan.id, target, analyst)

        assert loan.status == target

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_admin_may_approve(self, db_session, admin, submitted_loan):
        service = LoanService(db_session)

        loan = await service.approve(submitted_loan.id, admin)

        assert loan.status == LoanStatus.APPROVED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_target_given_as_string(self, db_session, analyst, submitted_loan):
        service = LoanService(db_session)

        loan = await service.transition(submitted_loan.id, "REJECTED", analyst)

        assert loan.status == LoanStatus.REJECTED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_second_approval_is_illegal(self, db_session, analyst, submitted_loan):
        """Approving twice fails and leaves the first result intact"""
        service = LoanService(db_session)

        first = await service.approve(submitted_loan.id, analyst)

        with pytest.raises(IllegalTransitionError):
            await service.approve(submitted_loan.id, analyst)

        assert first.status == LoanStatus.APPROVED
        assert (await service.get(submitted_loan.id)).status == LoanStatus.APPROVED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rejected_cannot_be_approved(self, db_session, analyst, admin, submitted_loan):
        """No path between terminal states"""
        service = LoanService(db_session)
        await service.reject(submitted_loan.id, analyst)

        with pytest.raises(IllegalTransitionError):
            await service.approve(submitted_loan.id, admin)

        assert (await service.get(submitted_loan.id)).status == LoanStatus.REJECTED

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [LoanStatus.SUBMITTED, "PENDING", "approved "])
    async def test_invalid_target(self, db_session, analyst, submitted_loan, target):
        """Only APPROVED and REJECTED are valid targets"""
        service = LoanService(db_session)

        with pytest.raises(IllegalTransitionError):
            await service.transition(submitted_loan.id, target, analyst)

        assert (await service.get(submitted_loan.id)).status == LoanStatus.SUBMITTED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_loan_is_not_found(self, db_session, analyst):
        service = LoanService(db_session)

        with pytest.raises(NotFoundError):
            await service.approve(9999, analyst)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_customer_is_forbidden_while_submitted(self, db_session, customer, submitted_loan):
        """A customer cannot approve, even their own application"""
        service = LoanService(db_session)

        with pytest.raises(ForbiddenError):
            await service.approve(submitted_loan.id, customer)

        assert (await service.get(submitted_loan.id)).status == LoanStatus.SUBMITTED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_customer_is_forbidden_after_decision(self, db_session, customer, analyst, submitted_loan):
        """Forbidden wins over the terminal-state conflict"""
        service = LoanService(db_session)
        await service.reject(submitted_loan.id, analyst)

        with pytest.raises(ForbiddenError):
            await service.approve(submitted_loan.id, customer)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_customer_is_forbidden_for_missing_loan(self, db_session, customer):
        """Unauthorized callers learn nothing about existence"""
        service = LoanService(db_session)

        with pytest.raises(ForbiddenError):
            await service.approve(9999, customer)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_analytics_unchanged_by_transition(self, db_session, analyst, submitted_loan):
        """Only status mutates after creation"""
        service = LoanService(db_session)
        before = (
            submitted_loan.dti, submitted_loan.risk_score,
            submitted_loan.eligibility_decision, submitted_loan.interest_rate
        )

        loan = await service.approve(submitted_loan.id, analyst)

        assert (loan.dti, loan.risk_score, loan.eligibility_decision, loan.interest_rate) == before


@pytest.fixture
async def file_session_factory(tmp_path):
    """File-backed database so each session gets its own connection"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'loanflow.db'}",
        connect_args={"timeout": 30}
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def seed_reviewers(factory, applicant):
    """Owner, analyst, admin and one submitted application"""
    async with factory() as session:
        users = [
            User(username=name, hashed_password="unused", role=role, active=True)
            for name, role in (
                ("carla", UserRole.CUSTOMER),
                ("andy", UserRole.ANALYST),
                ("ada", UserRole.ADMIN),
            )
        ]
        session.add_all(users)
        await session.commit()

        owner, analyst, admin = [
            Principal(user_id=user.id, username=user.username, role=user.role) for user in users
        ]
        loan = await LoanService(session).create(applicant, owner)

    return loan.id, analyst, admin


class TestConcurrentTransitions:
    """Two reviewers acting on the same application"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("targets", [
        (LoanStatus.APPROVED, LoanStatus.REJECTED),
        (LoanStatus.APPROVED, LoanStatus.APPROVED),
        (LoanStatus.REJECTED, LoanStatus.APPROVED, LoanStatus.REJECTED),
    ])
    async def test_simultaneous_transitions_have_one_winner(self, file_session_factory, applicant, targets):
        """Concurrent requests on separate connections: one succeeds, the rest are illegal"""
        loan_id, analyst, admin = await seed_reviewers(file_session_factory, applicant)
        reviewers = [analyst, admin]

        async def review(target, principal):
            async with file_session_factory() as session:
                return await LoanService(session).transition(loan_id, target, principal)

        results = await asyncio.gather(
            *(review(target, reviewers[i % 2]) for i, target in enumerate(targets)),
            return_exceptions=True
        )

        winners = [result for result in results if isinstance(result, LoanApplication)]
        losers = [result for result in results if isinstance(result, IllegalTransitionError)]
        assert len(winners) == 1
        assert len(losers) == len(targets) - 1

        async with file_session_factory() as session:
            stored = await LoanService(session).get(loan_id)
        assert stored.status == winners[0].status

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_stale_reviewer_loses(self, session_factory, db_session, analyst, admin, submitted_loan):
        """Both load SUBMITTED; the second conditional update finds nothing to change"""
        async with session_factory() as first_session, session_factory() as second_session:
            first = LoanService(first_session)
            second = LoanService(second_session)

            # Both reviewers see the application as submitted
            assert (await first.get(submitted_loan.id)).status == LoanStatus.SUBMITTED
            assert (await second.get(submitted_loan.id)).status == LoanStatus.SUBMITTED

            approved = await first.approve(submitted_loan.id, analyst)

            with pytest.raises(IllegalTransitionError):
                await second.reject(submitted_loan.id, admin)

        assert approved.status == LoanStatus.APPROVED

        result = await db_session.execute(
            select(LoanApplication)
            .where(LoanApplication.id == submitted_loan.id)
            .execution_options(populate_existing=True)
        )
        assert result.scalar_one().status == LoanStatus.APPROVED


class TestLoanQueries:
    """Tests for get and list"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await LoanService(db_session).get(42)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_filters_and_pages(self, db_session, customer, admin, analyst, applicant):
        """Status and owner filters, pagination and sorting"""
        service = LoanService(db_session)
        created = []
        for amount in (1000.0, 2000.0, 3000.0):
            applicant.amount = amount
            created.append(await service.create(applicant, customer))
        applicant.amount = 4000.0
        await service.create(applicant, admin)
        await service.approve(created[0].id, analyst)

        loans, total = await service.list_loans(page=1, size=2, sort_by="amount", direction="asc")
        assert total == 4
        assert [loan.amount for loan in loans] == [1000.0, 2000.0]

        loans, total = await service.list_loans(page=2, size=2, sort_by="amount", direction="asc")
        assert [loan.amount for loan in loans] == [3000.0, 4000.0]

        loans, total = await service.list_loans(status=LoanStatus.SUBMITTED)
        assert total == 3

        loans, total = await service.list_loans(user_id=customer.user_id, sort_by="amount", direction="desc")
        assert total == 3
        assert [loan.amount for loan in loans] == [3000.0, 2000.0, 1000.0]

        assert await service.count() == 4

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort_by,direction", [("hashed_password", "asc"), ("amount", "sideways")])
    async def test_list_rejects_bad_sorting(self, db_session, sort_by, direction):
        with pytest.raises(ValidationError):
            await LoanService(db_session).list_loans(sort_by=sort_by, direction=direction)
