class InvalidDateError(ValueError):
    """Raised when an anchor or renewal date cannot be interpreted."""


class UnknownCurrencyError(ValueError):
    """Raised when a currency code has no entry in the rate source."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown currency code: {code!r}")


class InvalidShareCountError(ValueError):
    """Raised when a subscription is shared with fewer than one payer."""


class StoreWriteError(Exception):
    """A single persisted write to the subscription store failed."""

    def __init__(self, subscription_id: int, reason: str | None = None):
        self.subscription_id = subscription_id
        message = f"Failed to update subscription {subscription_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
