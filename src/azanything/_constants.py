"""Internal constants shared across the library."""

# Storage keys used by the web client's localStorage.
SESSION_KEY = "azAnythingUser"
REQUESTS_KEY = "azAnythingRequests"
DIRECTORY_KEY = "azAnythingDirectory"

# Shared demo secret accepted by the default credential check.
DEMO_SHARED_SECRET = "demo123"

# ------------------------------------------------------------------
# Estimated cost bounds (currency units, inclusive)
# ------------------------------------------------------------------

MIN_ESTIMATED_COST = 50
MAX_ESTIMATED_COST = 249


def clamp_cost(value: float, minimum: float = MIN_ESTIMATED_COST, maximum: float = MAX_ESTIMATED_COST) -> float:
    """Clamp *value* into ``[minimum, maximum]``.

    Raises :class:`ValueError` if the bounds are inverted or negative.
    """
    if minimum < 0 or maximum < minimum:
        raise ValueError(f"invalid cost bounds [{minimum}, {maximum}]")
    return max(minimum, min(maximum, value))
