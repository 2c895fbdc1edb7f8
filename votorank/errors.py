"""
Error taxonomy for the integrity core.

None of these reach an end user. Pure transforms catch them and degrade to a
"no data" result; the reconciliation run catches them per record.
"""


class VotorankError(Exception):
    """Base class for all votorank errors."""
    pass


class MalformedInput(VotorankError):
    """Raw disclosure payload is not a well-formed mapping."""
    pass


class NetworkUnreachable(VotorankError):
    """A probe could not complete (timeout, DNS, TLS, connection reset)."""
    pass


class PersistenceFailure(VotorankError):
    """The store rejected a write."""

    def __init__(self, candidate_id: str, message: str):
        super().__init__(f"Write failed for {candidate_id}: {message}")
        self.candidate_id = candidate_id


class ConfigurationMissing(VotorankError):
    """A repair strategy lacks the input it needs; the strategy is skipped."""
    pass
