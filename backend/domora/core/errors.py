"""Domain errors raised by the core engines and service layer."""


class DomoraError(Exception):
    """Base class for errors that map to a 400 response."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSplitInput(DomoraError):
    """Empty payer/beneficiary set or unusable amount passed to split math."""


class EmptyRotation(DomoraError):
    """Fairness scorer asked to rank an empty member list."""


class TaskActionError(DomoraError):
    """complete/skip/takeover rejected for the task's current state."""


class HouseholdGuardError(DomoraError):
    """Membership change would leave the household in an invalid state."""


class ValidationError(DomoraError):
    """Request payload failed validation."""


class NotFoundError(DomoraError):
    status_code = 404


class PermissionDeniedError(DomoraError):
    status_code = 403
