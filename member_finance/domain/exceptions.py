"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidLoanTermsError(DomainException):
    """Principal, rate or term passed to the loan calculator is out of range"""

    pass


class InvalidTransitionError(DomainException):
    """Loan status change attempted from a status that does not allow it"""

    pass


class InvalidLoanStateError(DomainException):
    """Operation needs an ACTIVE loan"""

    pass


class ValidationError(DomainException):
    """Amount, term or setting value outside the configured policy bounds"""

    pass


class NotFoundError(DomainException):
    """Referenced member or loan does not exist"""

    pass


class ConflictError(DomainException):
    """Write would violate a uniqueness rule (e.g. duplicate member email)"""

    pass
