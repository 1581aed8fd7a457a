"""Exception types shared by the payment, callback and payout services."""


class GoPassError(Exception):
    """Base class for domain errors raised by gopass services."""


class ConfigurationError(GoPassError):
    """Payment provider is not configured or its configuration endpoint failed."""


class ProviderTransportError(GoPassError):
    """Network or HTTP failure talking to the payment provider. Not retried.

    `deposit_id` is set when the failure happened after the deposit was sent,
    in which case the provider may still have accepted it.
    """

    def __init__(self, message: str, deposit_id: str | None = None) -> None:
        super().__init__(message)
        self.deposit_id = deposit_id


class RecordNotFoundError(GoPassError):
    """Requested record does not exist."""


class TicketLimitReachedError(GoPassError):
    """Event has issued as many tickets as its organizer's plan allows."""

    def __init__(self, event_id: str, limit: int) -> None:
        super().__init__(f"event {event_id} has reached its limit of {limit} tickets")
        self.event_id = event_id
        self.limit = limit


class PayoutConflictError(GoPassError):
    """Payout request has already been decided."""

    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(f"payout request {request_id} is already {status}")
        self.request_id = request_id
        self.status = status
