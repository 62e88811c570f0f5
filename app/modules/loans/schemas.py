from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from app.modules.loans.models import LoanStatus, EligibilityDecision
from app.modules.loans.risk import ApplicantRecord


class LoanApplicationRequest(BaseModel):
    """Applicant input; numeric fields are optional and default to zero when scored"""
    full_name: Optional[str] = Field(None, max_length=200)
    amount: Optional[float] = None
    tenure: Optional[int] = None
    monthly_income: Optional[float] = None
    monthly_debt: Optional[float] = None
    credit_score: Optional[int] = None
    employment_type: Optional[str] = Field(None, max_length=50)
    purpose: Optional[str] = Field(None, max_length=100)

    class Config:
        # NaN and Infinity are valid JSON to the parser but not amounts
        allow_inf_nan = False

    def to_record(self) -> ApplicantRecord:
        return ApplicantRecord(**self.model_dump())


class LoanApplicationResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    full_name: str
    amount: float
    tenure: int
    monthly_income: Optional[float] = None
    monthly_debt: Optional[float] = None
    credit_score: Optional[int] = None
    employment_type: Optional[str] = None
    purpose: Optional[str] = None
    dti: float
    risk_score: int
    eligibility_decision: EligibilityDecision
    interest_rate: float
    status: LoanStatus
    created_at: datetime

    class Config:
        from_attributes = True


class LoanPageResponse(BaseModel):
    loans: List[LoanApplicationResponse]
    total: int
    page: int
    size: int
    total_pages: int
