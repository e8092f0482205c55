"""Human-readable formatting helpers."""


def format_elapsed(seconds: float) -> str:
    """Format a duration compactly, e.g. ``1h2m``, ``3m4s``, ``1.5s`` or ``250ms``."""
    if seconds >= 3600:
        return f"{int(seconds // 3600)}h{int(seconds % 3600 // 60)}m"
    if seconds >= 60:
        return f"{int(seconds // 60)}m{int(seconds % 60)}s"
    if seconds >= 1:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000:.0f}ms"
