from .client import LLMClient
from .errors import HttpStatusError, LLMError, NotConfiguredError, ParseError, ReadError, TransportError
from .jobs import AIResult, ContextTask, EditJob, TriageJob
from .worker import AIWorker

__all__ = [
    "LLMClient",
    "LLMError",
    "NotConfiguredError",
    "HttpStatusError",
    "TransportError",
    "ReadError",
    "ParseError",
    "AIResult",
    "ContextTask",
    "EditJob",
    "TriageJob",
    "AIWorker",
]
