"""Write outgoing model requests to JSON files for debugging."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from agent_cowork.llm import ConversationMessage, message_to_wire
from agent_cowork.logging import get_logger

log = get_logger(__name__)


def log_request(
    log_dir: Path | str,
    session_id: str,
    *,
    model: str,
    messages: list[ConversationMessage],
    tools: list[dict[str, Any]],
    temperature: float,
) -> Path | None:
    """Dump one request payload; returns the written path or ``None`` on failure."""
    timestamp = datetime.now(UTC).isoformat().replace(":", "-").replace(".", "-")
    target_dir = Path(log_dir).expanduser()
    path = target_dir / f"openai-request-{session_id}-{timestamp}.json"
    payload = {
        "model": model,
        "messages": [message_to_wire(msg) for msg in messages],
        "tools": tools,
        "temperature": temperature,
    }
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        log.warning("Failed to write request log", path=str(path), error=str(e))
        return None
    log.debug("Request logged", path=str(path))
    return path
