"""Recoverable market errors surfaced to the player."""


class MarketError(Exception):
    """Base class for rejected player actions."""


class InsufficientFunds(MarketError):
    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds: need ${required:,.2f}, have ${available:,.2f}"
        )


class InsufficientHoldings(MarketError):
    def __init__(self, company_id: str, requested: int, owned: int):
        self.company_id = company_id
        self.requested = requested
        self.owned = owned
        super().__init__(
            f"You only own {owned} shares of {company_id} (tried to sell {requested})"
        )


class InvalidDirection(MarketError):
    def __init__(self, direction: object):
        self.direction = direction
        super().__init__(f"Invalid bet direction: {direction!r} (expected 'up' or 'down')")


class ExternalFetchFailure(Exception):
    """Raised by feed clients; the fetcher always recovers with synthetic data."""
