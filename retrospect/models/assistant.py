from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column

from retrospect.models.common import timestamp_field


class Rating(str, Enum):
    GOOD = "good"
    BAD = "bad"
    NEUTRAL = "neutral"


class AIConversation(SQLModel, table=True):
    __tablename__ = "ai_conversation"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = ""
    messages: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class AIFeedback(SQLModel, table=True):
    """A thumbs rating on one assistant message of a saved conversation."""

    __tablename__ = "ai_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="ai_conversation.id", index=True)
    message_index: int
    rating: Rating
    created_at: datetime = timestamp_field()


class AIEstimate(SQLModel, table=True):
    __tablename__ = "ai_estimate"

    id: Optional[int] = Field(default=None, primary_key=True)
    brief_text: str
    project_type: Optional[str] = None
    cms: Optional[str] = None
    integrations: Optional[str] = None
    estimate_result: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    # denormalised from estimate_result for listing
    suggested_price: Optional[float] = None
    confidence: Optional[str] = None
    risks: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    user_feedback: Optional[Rating] = None
    created_at: datetime = timestamp_field()


class TaskGeneration(SQLModel, table=True):
    """A task breakdown the user chose to keep, usually after editing it."""

    __tablename__ = "task_generation"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_name: Optional[str] = None
    project_brief: str = ""
    tasks: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    summary: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = timestamp_field()


class TaskTemplate(SQLModel, table=True):
    __tablename__ = "task_template"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: str = ""
    project_type: Optional[str] = None
    tasks: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = timestamp_field()
