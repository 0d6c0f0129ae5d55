from __future__ import annotations

from dataclasses import dataclass
from typing import Union
import math
import re


Number = Union[int, float]
RawInput = Union[int, float, str, None]

# Leading decimal literal, the way a browser number field's text is read:
# "6.5%" -> 6.5, "1e3" -> 1000, ".5" -> 0.5, "Infinity" -> inf
_LEADING_FLOAT = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")
_LEADING_INT = re.compile(r"[+-]?[0-9]+")


@dataclass
class LoanScenario:
    """One side of the refinance comparison.

    Fields:
        principal: outstanding loan balance (currency units).
        annual_rate: nominal annual rate as a percentage, e.g. 4 means 4%.
        term_years: loan duration in years, fractions allowed. Truncated to
            whole months when converted to monthly periods.

    No validation is performed; NaN fields simply propagate into the results.
    """

    principal: float
    annual_rate: float
    term_years: float


@dataclass
class SavingsResult:
    """Payments of both loans and their difference.

    Fields:
        current_payment: monthly payment of the current loan.
        new_payment: monthly payment of the refinanced loan.
        monthly_savings: current_payment - new_payment. Positive means the
            refinance lowers the payment.
    """

    current_payment: float
    new_payment: float
    monthly_savings: float


def monthly_rate(annual_rate: float) -> float:
    # annual percent -> monthly fraction, e.g. 6% => 0.005
    return annual_rate / 100.0 / 12.0


def term_months(term_years: Number) -> float:
    # whole months only: 2.9 years => 34 periods, never rounded up
    if not math.isfinite(term_years):
        return math.nan
    months = term_years * 12
    if math.isinf(months):
        return months
    return float(math.trunc(months))


def _divide(numerator: float, denominator: float) -> float:
    # IEEE division: x/0 is a signed infinity, 0/0 and nan/0 are nan
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator) or math.isnan(denominator):
        return math.nan
    sign = math.copysign(1.0, numerator) * math.copysign(1.0, denominator)
    return math.copysign(math.inf, sign)


def _power(base: float, exponent: float) -> float:
    try:
        result = base ** exponent
    except OverflowError:
        return math.inf
    except ZeroDivisionError:
        # 0 ** negative
        return math.inf
    if isinstance(result, complex):
        # negative base with a non-integral exponent
        return math.nan
    return result


def compute_monthly_payment(scenario: LoanScenario) -> float:
    """Fixed monthly payment that retires ``scenario.principal`` over the term.

    payment = P * r / (1 - (1 + r) ** -n)

    A zero rate makes the denominator zero and the payment NaN; it is not
    special-cased. Any NaN input gives a NaN payment.
    """
    rate = monthly_rate(scenario.annual_rate)
    months = term_months(scenario.term_years)
    numerator = scenario.principal * rate
    denominator = 1 - _power(1 + rate, -months)
    return _divide(numerator, denominator)


def compute_savings(current: LoanScenario, refinanced: LoanScenario) -> SavingsResult:
    # the two loans are not normalized against each other (term, balance)
    current_payment = compute_monthly_payment(current)
    new_payment = compute_monthly_payment(refinanced)
    return SavingsResult(
        current_payment=current_payment,
        new_payment=new_payment,
        monthly_savings=current_payment - new_payment,
    )


def parse_amount(value: RawInput) -> float:
    """Read a raw form value as a float; unreadable input becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT.match(str(value).lstrip())
    if not match:
        return math.nan
    text = match.group(0)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def parse_term(value: RawInput) -> float:
    """Read a raw form value as whole years; unreadable input becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return math.nan
        return float(math.trunc(value))
    match = _LEADING_INT.match(str(value).lstrip())
    if not match:
        return math.nan
    return float(match.group(0))


def scenario_from_inputs(
    loan_amount: RawInput,
    interest_rate: RawInput,
    term: RawInput,
) -> LoanScenario:
    return LoanScenario(
        principal=parse_amount(loan_amount),
        annual_rate=parse_amount(interest_rate),
        term_years=parse_term(term),
    )


def calculate_savings(
    current_loan_amount: RawInput,
    current_interest_rate: RawInput,
    remaining_term: RawInput,
    new_loan_amount: RawInput,
    new_interest_rate: RawInput,
    new_loan_term: RawInput,
) -> SavingsResult:
    """Run the comparison straight from the six raw form fields.

    Empty or non-numeric fields are not rejected: they turn into NaN and the
    affected payments come out NaN.
    """
    current = scenario_from_inputs(current_loan_amount, current_interest_rate, remaining_term)
    refinanced = scenario_from_inputs(new_loan_amount, new_interest_rate, new_loan_term)
    return compute_savings(current, refinanced)
