"""Error types raised by the pricing services."""


class PricingError(Exception):
    """Base class for pricing engine failures."""


class ConversionError(PricingError):
    """Currency conversion failed or produced a non-finite amount."""

    def __init__(self, message: str, source: str | None = None, target: str | None = None):
        super().__init__(message)
        self.source = source
        self.target = target


class LLMError(PricingError):
    """The LLM collaborator failed, timed out, or returned an unusable response."""
