"""Pydantic schemas for the chat endpoint."""
from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, Field

from calendar_copilot.schemas.preferences import UserPreferences


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    preferences_context: Optional[str] = None
    preferences: Optional[UserPreferences] = None
    timezone: Optional[str] = None
