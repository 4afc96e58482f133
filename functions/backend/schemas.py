"""
Pydantic schemas for the chat web API.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    text: str = Field(default="", max_length=10000)


class MessageAccepted(BaseModel):
    status: Literal["accepted"] = "accepted"
