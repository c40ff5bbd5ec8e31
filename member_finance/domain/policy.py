"""Loan policy settings - defaults, override resolution and bounds checks"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional

from member_finance.domain.exceptions import ValidationError

SETTING_DEFAULTS: Dict[str, str] = {
    "defaultInterestRate": "12",
    "maxLoanAmount": "100000",
    "minLoanAmount": "1000",
    "maxTermMonths": "36",
    "minTermMonths": "1",
}


@dataclass(frozen=True)
class LoanPolicy:
    """Typed view of the resolved settings"""

    default_interest_rate: Decimal
    min_loan_amount: Decimal
    max_loan_amount: Decimal
    min_term_months: int
    max_term_months: int


def resolve_settings(
    overrides: Optional[Mapping[str, str]] = None,
    defaults: Mapping[str, str] = SETTING_DEFAULTS,
) -> Dict[str, str]:
    """Merge persisted overrides onto the default table; unknown keys are ignored"""
    resolved = dict(defaults)
    for key, value in (overrides or {}).items():
        if key in resolved:
            resolved[key] = str(value)
    return resolved


def _to_decimal(key: str, value) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid value for {key}") from e
    if not number.is_finite():
        raise ValidationError(f"Invalid value for {key}")
    return number


def to_policy(resolved: Mapping[str, str]) -> LoanPolicy:
    return LoanPolicy(
        default_interest_rate=_to_decimal("defaultInterestRate", resolved["defaultInterestRate"]),
        min_loan_amount=_to_decimal("minLoanAmount", resolved["minLoanAmount"]),
        max_loan_amount=_to_decimal("maxLoanAmount", resolved["maxLoanAmount"]),
        min_term_months=int(_to_decimal("minTermMonths", resolved["minTermMonths"])),
        max_term_months=int(_to_decimal("maxTermMonths", resolved["maxTermMonths"])),
    )


def validate_loan_request(policy: LoanPolicy, amount, term_months: int) -> None:
    """
    Check a requested principal and term against the configured bounds.

    Raises:
        ValidationError: amount or term outside [min, max]
    """
    amount = Decimal(str(amount))
    if amount < policy.min_loan_amount or amount > policy.max_loan_amount:
        raise ValidationError(
            f"Loan amount must be between {policy.min_loan_amount:,} and {policy.max_loan_amount:,}"
        )
    if term_months < policy.min_term_months or term_months > policy.max_term_months:
        raise ValidationError(
            f"Loan term must be between {policy.min_term_months} and {policy.max_term_months} months"
        )


INTEGER_SETTINGS = ("minTermMonths", "maxTermMonths")


def validate_setting_updates(
    updates: Mapping[str, object],
    current: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Keep only known setting keys and check each value is a non-negative number.

    The updates are merged over the current overrides and defaults, and the
    merged table must keep each minimum below its maximum.

    Returns:
        Mapping of key -> string value ready to persist

    Raises:
        ValidationError: on the first non-numeric, negative or fractional
            term value, or when a minimum is not below its maximum
    """
    accepted = {}
    for key in SETTING_DEFAULTS:
        if key not in updates or updates[key] is None:
            continue
        value = str(updates[key])
        number = _to_decimal(key, value)
        if number < 0:
            raise ValidationError(f"Invalid value for {key}")
        if key in INTEGER_SETTINGS and number != number.to_integral_value():
            raise ValidationError(f"Invalid value for {key}")
        accepted[key] = value

    policy = to_policy(resolve_settings({**(current or {}), **accepted}))
    if policy.min_loan_amount >= policy.max_loan_amount:
        raise ValidationError("Minimum loan amount must be less than maximum")
    if policy.min_term_months >= policy.max_term_months:
        raise ValidationError("Minimum term must be less than maximum")
    return accepted
