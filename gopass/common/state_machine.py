"""Status transitions for payout requests and ticket payments."""

PAYOUT_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"approved", "denied"},
    "approved": set(),
    "denied": set(),
}

TICKET_PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"completed", "failed"},
    "awaiting-confirmation": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


def validate_transition(current: str, new: str, transitions: dict[str, set[str]] = PAYOUT_TRANSITIONS) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in transitions.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")


def is_terminal(status: str, transitions: dict[str, set[str]] = PAYOUT_TRANSITIONS) -> bool:
    return not transitions.get(status, set())
