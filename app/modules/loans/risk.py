"""Risk evaluation - converts applicant financials into a score, decision and rate"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from app.modules.loans.models import EligibilityDecision, EmploymentType

# (threshold, points), first match wins
CREDIT_TIERS: Tuple[Tuple[int, int], ...] = ((760, 10), (700, 25), (650, 45))
CREDIT_FLOOR_POINTS = 70

DTI_TIERS: Tuple[Tuple[float, int], ...] = ((0.25, 5), (0.35, 15), (0.50, 35))
DTI_CEILING_POINTS = 55

EMPLOYMENT_POINTS = {
    EmploymentType.SALARIED.value: 5,
    EmploymentType.SELF_EMPLOYED.value: 15,
    EmploymentType.STUDENT.value: 25,
}
EMPLOYMENT_DEFAULT_POINTS = 35

BASE_RATE = 8.5
RATE_PER_RISK_POINT = 0.05


@dataclass
class ApplicantRecord:
    """Raw applicant input; numeric fields may be missing"""

    full_name: Optional[str] = None
    amount: Optional[float] = None
    tenure: Optional[int] = None
    monthly_income: Optional[float] = None
    monthly_debt: Optional[float] = None
    credit_score: Optional[int] = None
    employment_type: Optional[str] = None
    purpose: Optional[str] = None


@dataclass(frozen=True)
class RiskEvaluation:
    """Computed analytics stamped on an application"""

    dti: float
    risk_score: int
    decision: EligibilityDecision
    interest_rate: float


def _number(value) -> float:
    """Missing, non-numeric and non-finite values count as zero"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _credit_points(credit: int) -> int:
    for threshold, points in CREDIT_TIERS:
        if credit >= threshold:
            return points
    return CREDIT_FLOOR_POINTS


def _dti_points(dti: float) -> int:
    for threshold, points in DTI_TIERS:
        if dti <= threshold:
            return points
    return DTI_CEILING_POINTS


def _employment_points(employment_type: Optional[str]) -> int:
    raw = getattr(employment_type, "value", employment_type)
    normalized = str(raw or "").strip().upper()
    return EMPLOYMENT_POINTS.get(normalized, EMPLOYMENT_DEFAULT_POINTS)


def determine_decision(credit: int, dti: float) -> EligibilityDecision:
    """
    Map credit score and DTI to a decision.

    REJECT:   credit < 600 or dti > 0.60
    REVIEW:   credit < 680 or dti > 0.45
    ELIGIBLE: everything else

    REJECT is checked first, so it wins when both apply.
    """
    if credit < 600 or dti > 0.60:
        return EligibilityDecision.REJECT
    if credit < 680 or dti > 0.45:
        return EligibilityDecision.REVIEW
    return EligibilityDecision.ELIGIBLE


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like Math.round(x * 10^d) / 10^d, halves go up"""
    factor = 10.0 ** digits
    return math.floor(value * factor + 0.5) / factor


def evaluate(record: ApplicantRecord) -> RiskEvaluation:
    """
    Score an applicant. Pure and total: never raises, no I/O.

    Risk points come from three independent tiers (credit score, DTI,
    employment type), clamped to 0-100. The rate is 8.5% plus 0.05% per risk
    point, rounded to one decimal.
    """
    income = _number(record.monthly_income)
    debt = _number(record.monthly_debt)
    credit = int(_number(record.credit_score))

    # No income means maximum ratio
    dti = 1.0 if income <= 0 else debt / income

    risk = _credit_points(credit) + _dti_points(dti) + _employment_points(record.employment_type)
    risk = min(100, max(0, risk))

    rate = round_half_up(BASE_RATE + risk * RATE_PER_RISK_POINT)

    return RiskEvaluation(
        dti=dti,
        risk_score=risk,
        decision=determine_decision(credit, dti),
        interest_rate=rate,
    )
