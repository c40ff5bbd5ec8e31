"""Simple-interest loan calculator"""

from decimal import Decimal

from member_finance.domain.models import LoanTerms
from member_finance.domain.exceptions import InvalidLoanTermsError


def calculate_loan(principal, annual_rate_percent, term_months: int) -> LoanTerms:
    """
    Derive total interest, total due and monthly payment for a loan.

    Interest is simple interest on the full principal for the whole term,
    not compounding and not declining-balance:

        total_interest  = principal * (rate / 100) * (term / 12)
        total_due       = principal + total_interest
        monthly_payment = total_due / term

    Results keep full precision; call LoanTerms.quantized() before persisting.

    Example:
        15000 at 10% for 4 months -> interest 500, total 15500, monthly 3875

    Raises:
        InvalidLoanTermsError: principal <= 0, rate < 0 or term < 1
    """
    principal = Decimal(str(principal))
    rate = Decimal(str(annual_rate_percent))

    if principal <= 0:
        raise InvalidLoanTermsError(f"Principal must be positive, got {principal}")
    if rate < 0:
        raise InvalidLoanTermsError(f"Interest rate cannot be negative, got {rate}")
    if not isinstance(term_months, int) or isinstance(term_months, bool) or term_months < 1:
        raise InvalidLoanTermsError(f"Term must be at least 1 month, got {term_months}")

    term = term_months

    # Multiply before dividing so whole-number inputs stay exact
    total_interest = principal * rate * term / Decimal(1200)
    total_due = principal + total_interest
    monthly_payment = total_due / term

    return LoanTerms(
        total_interest=total_interest,
        total_due=total_due,
        monthly_payment=monthly_payment,
    )
