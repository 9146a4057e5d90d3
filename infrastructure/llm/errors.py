from typing import Optional

from util.text import truncate_bytes

DIAGNOSTIC_BYTES = 200


class LLMError(RuntimeError):
    """Base for every failure the AI worker reports back as a toast."""


class NotConfiguredError(LLMError):
    def __init__(self, message: str = "AI not configured"):
        super().__init__(message)


class HttpStatusError(LLMError):
    def __init__(self, code: int, body: str = ""):
        self.code = code
        self.body = body or ""
        super().__init__(f"AI HTTP {code}: {truncate_bytes(self.body, DIAGNOSTIC_BYTES)}")


class TransportError(LLMError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"AI transport error: {detail}")


class ReadError(LLMError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"AI response read failed: {detail}")


class ParseError(LLMError):
    def __init__(self, detail: str, content: Optional[str] = ""):
        self.detail = detail
        self.content = content or ""
        super().__init__(f"AI output not valid JSON ({detail}): {truncate_bytes(self.content, DIAGNOSTIC_BYTES)}")


__all__ = ["LLMError", "NotConfiguredError", "HttpStatusError", "TransportError", "ReadError", "ParseError"]
