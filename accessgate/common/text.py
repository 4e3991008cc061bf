"""Message length limits."""

ELLIPSIS = "..."


def truncate(message: str, limit: int = 120) -> str:
    """Cut a message to ``limit`` characters, marking the cut with an ellipsis."""
    if len(message) <= limit:
        return message
    return message[:max(limit - len(ELLIPSIS), 0)] + ELLIPSIS
