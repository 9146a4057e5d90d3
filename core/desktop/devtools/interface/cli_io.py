import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

ENVELOPE_VERSION = 1


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def structured_response(
    command: str,
    *,
    status: str = "OK",
    message: str = "",
    payload: Optional[Dict[str, Any]] = None,
    toasts: Optional[List[str]] = None,
    exit_code: int = 0,
) -> int:
    """Print the JSON envelope for a board command and return its exit code.

    ``toasts`` carries the messages the board raised while the command ran,
    the same lines the TUI would have flashed in its toast bar.
    """
    envelope: Dict[str, Any] = {
        "version": ENVELOPE_VERSION,
        "command": command,
        "status": status,
        "message": message,
        "at": iso_timestamp(),
        "payload": payload or {},
    }
    if toasts:
        envelope["toasts"] = list(toasts)
    print(json.dumps(envelope, ensure_ascii=False, indent=2))
    return exit_code


def structured_error(
    command: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    toasts: Optional[List[str]] = None,
) -> int:
    return structured_response(command, status="ERROR", message=message, payload=payload, toasts=toasts, exit_code=1)


__all__ = ["ENVELOPE_VERSION", "iso_timestamp", "structured_response", "structured_error"]
