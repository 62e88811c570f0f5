# Loans module
from app.modules.loans.models import (
    LoanApplication, LoanStatus, EligibilityDecision, EmploymentType
)

__all__ = [
    "LoanApplication", "LoanStatus", "EligibilityDecision", "EmploymentType"
]
