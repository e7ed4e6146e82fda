"""
Error taxonomy for the estimation flow.

Every error carries a message that is safe to show to the visitor; the
request boundary turns any of them into ``400 {"error": message}``.
Zero comparables is not an error: the pricing step falls back to the
regional default and reports it through ``comparable_sales == 0``.
"""


class EstimationError(Exception):
    outcome = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(EstimationError):
    """Required field missing or malformed."""
    outcome = "invalid_input"


class NotFound(EstimationError):
    """The address could not be geocoded."""
    outcome = "not_found"


class UpstreamError(EstimationError):
    """Geocoder, sales store or mail provider unreachable or erroring."""
    outcome = "upstream_error"
