"""Exceptions raised inside the client. None of them cross WebClient's public methods."""


class WebClientError(Exception):
    """Base class for client-side refusals to issue a request."""


class BudgetExhausted(WebClientError):
    """The run's total request budget is spent."""


class DomainLimitReached(WebClientError):
    """The run already visited as many distinct domains as allowed."""

    def __init__(self, domain: str) -> None:
        super().__init__(f"visited domain limit reached: {domain}")
        self.domain = domain
