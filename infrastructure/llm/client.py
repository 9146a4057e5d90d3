import logging
from typing import Any, Dict, List, Optional

import requests

from config import LLMConfig
from .errors import HttpStatusError, NotConfiguredError, ReadError, TransportError

logger = logging.getLogger("aipm.ai")


class LLMClient:
    """One chat-completions round trip per call; never retries."""

    def __init__(self, config: Optional[LLMConfig], session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return self.config is not None

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """Return ``choices[0].message.content`` or raise an ``LLMError``."""
        if self.config is None:
            raise NotConfiguredError()
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        body = {"model": self.config.model, "messages": messages}
        try:
            resp = self.session.post(
                self.config.api_url,
                json=body,
                headers=headers,
                timeout=self.config.timeout_secs,
            )
        except (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as exc:
            raise ReadError(str(exc)) from exc
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        if not 200 <= resp.status_code < 300:
            logger.warning("LLM endpoint returned HTTP %s", resp.status_code)
            raise HttpStatusError(resp.status_code, resp.text)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ReadError(f"body is not JSON: {exc}") from exc
        return _message_content(payload)


def _message_content(payload: Any) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ReadError("missing choices[0].message.content") from exc
    if not isinstance(content, str):
        raise ReadError("choices[0].message.content is not a string")
    return content


__all__ = ["LLMClient"]
