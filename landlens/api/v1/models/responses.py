"""
API response models using Pydantic.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from landlens.domain.models import Shape, ToolbarState


class SessionResponse(BaseModel):
    """Current shapes and toolbar state of a session."""
    session_id: str = Field(
        description="Unique identifier for the session"
    )
    shapes: List[Shape] = Field(
        description="Active shapes in insertion order"
    )
    toolbar: ToolbarState = Field(
        description="Enabled state of analyze, clear, undo and redo"
    )
    has_analysis: bool = Field(
        description="Whether a completed analysis is available"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "5f2c0f6d9a4b4c7e8e8b1f7f3c2d1a0b",
                "shapes": [
                    {
                        "id": "a1b2c3",
                        "kind": "circle",
                        "vertices": [],
                        "center": [9.5916, 76.5222],
                        "radius": 500.0,
                    }
                ],
                "toolbar": {
                    "analyze_enabled": True,
                    "clear_enabled": True,
                    "undo_enabled": True,
                    "redo_enabled": False,
                },
                "has_analysis": False,
            }
        }
    )


class HistoryResponse(SessionResponse):
    """Session state after an undo or redo."""
    applied: Optional[str] = Field(
        default=None,
        description="Action that was undone or redone, or null if nothing happened"
    )


class ChatResponse(BaseModel):
    """Assistant answer."""
    answer: str
