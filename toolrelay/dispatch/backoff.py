"""Exponential backoff for delivery retries."""


def compute_backoff(attempt: int, base_delay_ms: int, max_delay_ms: int) -> int:
    """Delay in milliseconds to wait after a failed attempt.

    delay = min(base_delay_ms * 2 ** (attempt - 1), max_delay_ms)

    Args:
        attempt: 1-based number of the attempt that just failed
        base_delay_ms: Delay after the first attempt
        max_delay_ms: Ceiling

    Raises:
        ValueError: If attempt is less than 1
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(base_delay_ms * 2 ** (attempt - 1), max_delay_ms)
