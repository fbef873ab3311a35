TRUNCATED_MARK = '\n... (output truncated)'


def truncate(text: str | None, size: int) -> str | None:
    """Cap text at size characters, 0 means no limit."""
    if text is None or not size or len(text) <= size:
        return text
    return text[:size] + TRUNCATED_MARK
