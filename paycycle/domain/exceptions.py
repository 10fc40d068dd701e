"""Domain-specific exceptions"""

from typing import List, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidDayToken(DomainException):
    """Billing-day token is malformed or outside 1..31"""

    def __init__(self, token: object, field: str = "day"):
        self.token = token
        self.field = field
        super().__init__(f"Invalid {field} token: {token!r}. Must be 1-31 or month-end")


class UnresolvedInstrumentReference(DomainException):
    """Item references an instrument or account that was not supplied"""

    def __init__(
        self,
        item_id: str,
        instrument_id: Optional[str] = None,
        account_id: Optional[str] = None,
    ):
        self.item_id = item_id
        self.instrument_id = instrument_id
        self.account_id = account_id
        if account_id is not None:
            message = f"Account {account_id!r} not found for item {item_id!r}"
        else:
            message = f"Instrument {instrument_id!r} not found for item {item_id!r}"
        super().__init__(message)


class InvalidFixPatch(DomainException):
    """Configuration fix set failed validation"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid fix patch: " + "; ".join(self.errors))


class FixApplicationError(DomainException):
    """A persistence step of a fix application failed part-way"""

    def __init__(self, phase: str, result: object):
        self.phase = phase
        self.result = result
        super().__init__(f"Fix application interrupted after phase {phase!r}")
