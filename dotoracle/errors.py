"""Exception hierarchy shared by the engines and the HTTP layer."""


class DotOracleError(Exception):
    """Base class for dotoracle errors."""


class InvalidInputError(DotOracleError, ValueError):
    """A caller asked for something that can never succeed (bad count, unknown id)."""


class NotFoundError(DotOracleError, LookupError):
    """A record that the operation depends on does not exist."""


class SkinLockedError(InvalidInputError):
    """Selecting a card back that has not been unlocked."""


class GatingDeniedError(DotOracleError):
    """Today's quota for the action is spent or an ad reward is required."""


class FeatureLockedError(DotOracleError):
    """The character level is too low for the requested topic or feature."""


class InterpretationError(DotOracleError):
    """The AI interpretation collaborator failed or is not configured."""


class RateLimitExceeded(InterpretationError):
    """The caller used up its daily interpretation quota."""

    def __init__(self, identity: str, reset_at: int):
        super().__init__(f"Daily interpretation limit reached for {identity}")
        self.identity = identity
        self.reset_at = reset_at
