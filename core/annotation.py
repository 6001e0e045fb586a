"""
Confidence annotation for dialogue-service responses.

When the service returns no output of its own, a reply text is synthesized
from the top intent's confidence. The service always tries to assign an
intent; a low confidence means it is unsure, in which case a
"did not understand" message is returned instead.
"""
from __future__ import annotations

import structlog
from typing import Any

from pydantic import ValidationError

from models.schemas import Intent

logger = structlog.get_logger()

HIGH_CONFIDENCE = 0.75
MEDIUM_CONFIDENCE = 0.5

NOT_UNDERSTOOD_TEXT = "I did not understand your intent"


def confidence_text(intent: Intent | None) -> str:
    """Map the top intent (or its absence) to one of three reply texts."""
    if intent is None:
        return NOT_UNDERSTOOD_TEXT
    if intent.confidence >= HIGH_CONFIDENCE:
        return f"I understood your intent was {intent.intent}"
    if intent.confidence >= MEDIUM_CONFIDENCE:
        return f"I think your intent was {intent.intent}"
    return NOT_UNDERSTOOD_TEXT


def update_message(response: dict[str, Any]) -> dict[str, Any]:
    """
    Annotate a dialogue-service response in place and return it.

    A response that already carries a non-empty ``output`` is returned as is.
    Otherwise ``output.text`` is set from the first intent, which the service
    orders by descending confidence.
    """
    output = response.get("output")
    if output:
        text = output.get("text") if isinstance(output, dict) else output
        logger.info("update_message_skipped", output_text=text)
        return response

    response["output"] = {}
    intents = response.get("intents") or []
    try:
        top = Intent.model_validate(intents[0]) if intents else None
    except ValidationError:
        logger.warning("unreadable_intent", intent=intents[0])
        top = None

    text = confidence_text(top)
    response["output"]["text"] = text

    logger.info("update_message", response_text=text)
    return response
