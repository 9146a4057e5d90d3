"""Text helpers shared by prompts, parser and display."""


def truncate_bytes(text: str, max_bytes: int) -> str:
    """Return the longest prefix of ``text`` whose UTF-8 form fits ``max_bytes``."""
    raw = (text or "").encode("utf-8")
    if len(raw) <= max_bytes:
        return text or ""
    return raw[:max_bytes].decode("utf-8", "ignore")


def one_line(text: str) -> str:
    """Collapse newlines so a value fits one prompt/list row."""
    return " ".join((text or "").split())


__all__ = ["truncate_bytes", "one_line"]
