"""Human-readable elapsed time"""
import math


def format_elapsed(seconds: float) -> str:
    """
    Render an elapsed duration for display.

    Args:
        seconds: Elapsed time in seconds. Negative and non-finite values
            render as zero.

    Returns:
        "HH:MM:SS.cc" when at least one hour has elapsed, otherwise "MM:SS.cc",
        where cc is hundredths of a second. Every field is zero-padded to two
        digits; hours widen past 99 instead of wrapping.
    """
    if not math.isfinite(seconds) or seconds <= 0:
        seconds = 0.0

    # Small epsilon so binary float error (0.29 * 100 = 28.999...) does not lose a hundredth
    total_centiseconds = int(math.floor(seconds * 100 + 1e-6))

    hours, remainder = divmod(total_centiseconds, 360000)
    minutes, remainder = divmod(remainder, 6000)
    secs, centiseconds = divmod(remainder, 100)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}.{centiseconds:02d}"
    return f"{minutes:02d}:{secs:02d}.{centiseconds:02d}"
