"""Consumer lifecycle transitions enforced by the consume loop."""

STARTING = "STARTING"
RUNNING = "RUNNING"
DRAINING = "DRAINING"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    STARTING: {RUNNING},
    RUNNING: {DRAINING},
    DRAINING: set(),
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
