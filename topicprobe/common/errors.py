"""Fatal error taxonomy.

Every failure past argument parsing ends the process. The entry point maps
these to a diagnostic line and `exit_code`.
"""


class ProbeError(Exception):
    """Base class for fatal tool errors."""

    exit_code = 1


class SetupError(ProbeError):
    """Client construction, startup or subscription failed."""


class DeliveryError(ProbeError):
    """The broker did not acknowledge a produced message in time."""


class ReceiveError(ProbeError):
    """Fetching the next message failed."""


class CommitError(ProbeError):
    """An offset commit failed."""


class UnassignError(ProbeError):
    """Releasing the partition assignment failed."""
