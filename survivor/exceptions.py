"""
Custom exceptions for the survivor pool engine.
"""


class SurvivorPoolError(Exception):
    """Base exception for all custom errors."""
    pass


# Bracket construction
class PreconditionError(SurvivorPoolError):
    """Raised when the bracket cannot be built from the current data."""
    def __init__(self, requirement: str, found: int = None, needed: int = None):
        self.requirement = requirement
        self.found = found
        self.needed = needed
        msg = requirement
        if needed is not None:
            msg = f"Need {needed} {requirement}, found {found or 0}"
        super().__init__(msg)


# Score feed
class ScoreFeedError(SurvivorPoolError):
    """Raised when the external score feed cannot be read."""
    def __init__(self, message: str, status: int = None):
        self.status = status
        super().__init__(message)


class ReconciliationMiss(SurvivorPoolError):
    """An internal game has no matching external event. Skipped, never fatal."""
    def __init__(self, game_id: int, matchup_code: str = None):
        self.game_id = game_id
        self.matchup_code = matchup_code
        label = matchup_code or f"game {game_id}"
        super().__init__(f"No score event for {label}")


# Cascade processing
class MutationError(SurvivorPoolError):
    """A single write failed. Recorded in the tick's error list."""
    def __init__(self, step: str, target: str, cause: Exception = None):
        self.step = step
        self.target = target
        self.cause = cause
        msg = f"{step} {target}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class AnomalyWarning(SurvivorPoolError):
    """Data-quality signal for operators. Logged, never raised."""
    pass


# Scheduling
class SchedulerConflict(SurvivorPoolError):
    """Raised when the scheduler state changed under a transition."""
    def __init__(self, expected_version: int, actual_version: int = None):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Scheduler version moved (expected {expected_version}, now {actual_version})"
        )


class ConfigurationError(SurvivorPoolError):
    """Raised when required configuration is missing or invalid."""
    pass
