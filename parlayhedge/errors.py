"""Error taxonomy for pricing, hedging and settlement."""


class ParlayHedgeError(Exception):
    """Base class for all ParlayHedge errors."""

    retryable = False


class InvalidInput(ParlayHedgeError, ValueError):
    """Caller supplied a bad stake, leg list or leg."""


class DegenerateProbability(InvalidInput):
    """A leg probability of 0 or 100 makes pricing undefined."""

    def __init__(self, message: str, leg_index: int | None = None):
        super().__init__(message)
        self.leg_index = leg_index


class OracleUnavailable(ParlayHedgeError):
    """The correlation oracle failed, timed out or returned garbage."""

    retryable = True


class DataQualityFault(ParlayHedgeError):
    """A purchase leg is missing data needed for settlement (e.g. its ticker)."""


class MarketLookupFailed(ParlayHedgeError):
    """A market data request failed; retried on the next settlement pass."""

    retryable = True

    def __init__(self, message: str, ticker: str | None = None):
        super().__init__(message)
        self.ticker = ticker


class ClaimConflict(ParlayHedgeError):
    """Claim attempted on an already-claimed or not-won purchase."""
