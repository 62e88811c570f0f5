from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class LoanStatus(str, enum.Enum):
    """Lifecycle status of a loan application"""
    SUBMITTED = "SUBMITTED"   # Initial, awaiting review
    APPROVED = "APPROVED"     # Terminal
    REJECTED = "REJECTED"     # Terminal


class EligibilityDecision(str, enum.Enum):
    """Outcome of the risk evaluation"""
    ELIGIBLE = "ELIGIBLE"
    REVIEW = "REVIEW"
    REJECT = "REJECT"


class EmploymentType(str, enum.Enum):
    """Recognised employment categories"""
    SALARIED = "SALARIED"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    STUDENT = "STUDENT"
    UNEMPLOYED = "UNEMPLOYED"


class LoanApplication(Base):
    """Credit application with its risk analytics and status"""
    __tablename__ = "loan_applications"

    id = Column(Integer, primary_key=True, index=True)

    # Owner (lookup by id only)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Applicant data
    full_name = Column(String(200), nullable=False)
    amount = Column(Float, nullable=False)
    tenure = Column(Integer, nullable=False)
    monthly_income = Column(Float, nullable=True)
    monthly_debt = Column(Float, nullable=True)
    credit_score = Column(Integer, nullable=True)
    employment_type = Column(String(50), nullable=True)
    purpose = Column(String(100), nullable=True)

    # Computed once at creation
    dti = Column(Float, nullable=False)
    risk_score = Column(Integer, nullable=False)
    eligibility_decision = Column(SQLEnum(EligibilityDecision), nullable=False)
    interest_rate = Column(Float, nullable=False)

    # Lifecycle
    status = Column(SQLEnum(LoanStatus), default=LoanStatus.SUBMITTED, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LoanApplication(id={self.id}, status={self.status}, decision={self.eligibility_decision})>"
