from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.dependencies import get_current_active_principal
from app.core.permissions import Principal
from app.modules.loans.models import LoanStatus
from app.modules.loans.schemas import LoanApplicationRequest, LoanApplicationResponse, LoanPageResponse
from app.modules.loans.services import LoanService

router = APIRouter(prefix="/api/loans", tags=["loans"])


def _page(loans, total: int, page: int, size: int) -> LoanPageResponse:
    return LoanPageResponse(
        loans=loans,
        total=total,
        page=page,
        size=size,
        total_pages=(total + size - 1) // size
    )


@router.post("/apply", response_model=LoanApplicationResponse)
async def apply_loan(
    application: LoanApplicationRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Submit a loan application; risk analytics are computed on creation"""
    service = LoanService(db)
    return await service.create(application.to_record(), principal)


@router.get("", response_model=LoanPageResponse)
async def list_loans(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    sort_by: str = "created_at",
    direction: str = "desc",
    status: Optional[LoanStatus] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """List applications with pagination, sorting and optional status filter"""
    service = LoanService(db)
    loans, total = await service.list_loans(page, size, sort_by, direction, status)
    return _page(loans, total, page, size)


@router.get("/mine", response_model=LoanPageResponse)
async def list_my_loans(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    status: Optional[LoanStatus] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """List the current user's applications, newest first"""
    service = LoanService(db)
    loans, total = await service.list_loans(page, size, status=status, user_id=principal.user_id)
    return _page(loans, total, page, size)


@router.get("/{loan_id}", response_model=LoanApplicationResponse)
async def read_loan(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    service = LoanService(db)
    return await service.get(loan_id)


@router.patch("/{loan_id}/approve", response_model=LoanApplicationResponse)
async def approve_loan(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Approve a submitted application (ANALYST, ADMIN)"""
    service = LoanService(db)
    return await service.approve(loan_id, principal)


@router.patch("/{loan_id}/reject", response_model=LoanApplicationResponse)
async def reject_loan(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Reject a submitted application (ANALYST, ADMIN)"""
    service = LoanService(db)
    return await service.reject(loan_id, principal)
