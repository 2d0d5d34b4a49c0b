from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Author of a transcript message"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class IntentCategory(str, Enum):
    """High-level purpose of an utterance"""
    SCHEDULE_VIEW = "SCHEDULE_VIEW"
    BOOKING_MANAGEMENT = "BOOKING_MANAGEMENT"
    TIME_BLOCKING = "TIME_BLOCKING"
    GENERAL_QUERY = "GENERAL_QUERY"


class TurnSource(str, Enum):
    """How the user produced a turn"""
    CHAT = "ai_chat"
    VOICE = "ai_voice"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: MessageRole
    content: str
    timestamp: datetime
    structured_data: Optional[Any] = None


class EntityMap(BaseModel):
    """Structured values pulled out of an utterance. Unset means not detected."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    customer: Optional[str] = None
    service: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    duration: Optional[str] = None
    view: Optional[str] = None
    date_context: Optional[str] = Field(default=None, alias="dateContext")
    date_value: Optional[str] = Field(default=None, alias="dateValue")
    time_value: Optional[str] = Field(default=None, alias="timeValue")
    reason: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        """Detected fields only, keyed by their wire names"""
        return self.model_dump(by_alias=True, exclude_none=True)


class IntentClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: IntentCategory
    action: str
    confidence: float = Field(ge=0.0, le=1.0)
    entities: EntityMap = Field(default_factory=EntityMap)


class DispatchEnvelope(BaseModel):
    """Body posted to the automation webhook"""
    model_config = ConfigDict(populate_by_name=True)

    intent: IntentCategory
    action: str
    entities: Dict[str, Any] = Field(default_factory=dict)
    user_input: str = Field(alias="userInput")
    timestamp: str
    session_id: str = Field(alias="sessionId")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DispatchResult(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
    error: Optional[str] = None
