"""
Core data models for the Assistant Relay.
Request bodies, the orchestrator queue item and relay results.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class QueueStatus(str, Enum):
    QUEUED = "queued"
    FAILED = "failed"


class QueueStage(str, Enum):
    CONFIGURATION = "configuration"
    AUTHENTICATE = "authenticate"
    SUBMIT = "submit"


# ──────────────────────────────────────────────────────────────
#  Message relay
# ──────────────────────────────────────────────────────────────

class MessageRequest(BaseModel):
    """One conversational turn sent by the UI."""
    context: dict[str, Any] = Field(default_factory=dict)   # opaque, owned by the dialogue service
    input: dict[str, Any] = Field(default_factory=dict)     # at least {"text": ...}

    @field_validator("context", "input", mode="before")
    @classmethod
    def _null_to_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class Intent(BaseModel):
    """A single classified intent from the dialogue service."""
    model_config = ConfigDict(extra="allow")

    intent: str
    confidence: float = 0.0


# ──────────────────────────────────────────────────────────────
#  Queue relay
# ──────────────────────────────────────────────────────────────

class QueueRequest(BaseModel):
    queue_name: str = Field(alias="queueName", min_length=1)


class SpecificContent(BaseModel):
    param_a: str = Field(default="dummy", serialization_alias="ParamA")
    param_b: str = Field(default="dummy", serialization_alias="ParamB")
    param_c: str = Field(default="dummy", serialization_alias="ParamC")


class QueueItem(BaseModel):
    """Work item pushed to the orchestrator queue."""
    name: str = Field(serialization_alias="Name")
    priority: str = Field(default="Normal", serialization_alias="Priority")
    specific_content: SpecificContent = Field(
        default_factory=SpecificContent, serialization_alias="SpecificContent",
    )
    defer_date: Optional[str] = Field(default=None, serialization_alias="DeferDate")
    due_date: Optional[str] = Field(default=None, serialization_alias="DueDate")
    reference: str = Field(default="demo process", serialization_alias="Reference")

    def to_payload(self) -> dict[str, Any]:
        return {"itemData": self.model_dump(by_alias=True)}


@dataclass(frozen=True)
class AuthToken:
    """Bearer token for a single queue submission. Never cached."""
    value: str

    @property
    def header(self) -> str:
        return f"Bearer {self.value}"

    def __repr__(self) -> str:
        return "AuthToken(value=***)"


class QueueSubmissionResult(BaseModel):
    """Outcome of one /api/queue request."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    status: QueueStatus
    queue_name: str = Field(serialization_alias="queueName")
    stage: Optional[QueueStage] = None
    detail: Optional[str] = None
    item: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status == QueueStatus.QUEUED.value
