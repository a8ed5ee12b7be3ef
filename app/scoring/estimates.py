"""
Project Estimator

Derives system size, investment, payback and savings ranges from the
customer's monthly electricity bill.

The bill is read from the question configured in
output_config.estimator.monthly_bill_question_id. Answers outside the
plausible range are ignored rather than guessed at.

  annual consumption (kWh) = bill × 12 / tariff
  recommended size (kWp)   = consumption / specific yield
  investment               = size × price per kWp
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from app.schemas.screening_result import (
    InvestmentEstimate,
    PaybackEstimate,
    ProjectEstimates,
    SavingsEstimate,
    SystemSizeEstimate,
)
from app.schemas.screening_template import EstimatorConfig

# Plausible monthly bill (exclusive bounds)
MIN_MONTHLY_BILL = 50.0
MAX_MONTHLY_BILL = 10_000.0

MAX_CONFIDENCE = 95.0

SIZE_RANGE = (0.8, 1.2)
SAVINGS_RANGE = (0.8, 0.95)
SAVINGS_ESTIMATE = 0.9
PAYBACK_MONTHS = (60, 84, 72)  # min, max, estimated


class BillNotAvailable(Exception):
    """The monthly bill could not be read from the responses."""
    pass


def extract_monthly_bill(responses: Mapping[str, Any], config: EstimatorConfig) -> float:
    question_id = config.monthly_bill_question_id
    if not question_id:
        raise BillNotAvailable("No monthly bill question configured")

    answer = responses.get(question_id)
    if answer is None:
        raise BillNotAvailable(f"Monthly bill question {question_id} not answered")
    if isinstance(answer, bool):
        raise BillNotAvailable(f"Monthly bill answer {answer!r} is not numeric")

    try:
        bill = float(answer)
    except (TypeError, ValueError):
        raise BillNotAvailable(f"Monthly bill answer {answer!r} is not numeric")

    if not MIN_MONTHLY_BILL < bill < MAX_MONTHLY_BILL:
        raise BillNotAvailable(f"Monthly bill {bill:.2f} outside plausible range")
    return bill


def estimate_project(monthly_bill: float, percentage_score: float, config: EstimatorConfig) -> ProjectEstimates:
    annual_bill = monthly_bill * 12
    annual_consumption = annual_bill / config.tariff_per_kwh
    kwp = annual_consumption / config.yield_kwh_per_kwp
    confidence = min(MAX_CONFIDENCE, percentage_score)

    low, high = SIZE_RANGE
    return ProjectEstimates(
        system_size=SystemSizeEstimate(
            min_kwp=kwp * low,
            max_kwp=kwp * high,
            recommended_kwp=kwp,
            confidence=confidence,
        ),
        investment=InvestmentEstimate(
            min_amount=kwp * low * config.investment_per_kwp,
            max_amount=kwp * high * config.investment_per_kwp,
            estimated_amount=kwp * config.investment_per_kwp,
            currency=config.currency,
            confidence=confidence,
        ),
        payback_period=PaybackEstimate(
            min_months=PAYBACK_MONTHS[0],
            max_months=PAYBACK_MONTHS[1],
            estimated_months=PAYBACK_MONTHS[2],
        ),
        annual_savings=SavingsEstimate(
            min_amount=annual_bill * SAVINGS_RANGE[0],
            max_amount=annual_bill * SAVINGS_RANGE[1],
            estimated_amount=annual_bill * SAVINGS_ESTIMATE,
            currency=config.currency,
        ),
    )


def calculate_project_estimates(
    responses: Mapping[str, Any],
    percentage_score: float,
    config: EstimatorConfig,
    warnings: Optional[list[str]] = None,
) -> Optional[ProjectEstimates]:
    """Estimates, or None (with a warning appended) when no usable bill is found."""
    try:
        bill = extract_monthly_bill(responses, config)
    except BillNotAvailable as e:
        if warnings is not None:
            warnings.append(f"Project estimates omitted: {e}")
        return None
    return estimate_project(bill, percentage_score, config)
