"""Typed results returned by the services."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    login: str
    phone_num: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class ChatOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chat_id: int
    chat_type: str
    init_sender: str
    created_at: Optional[datetime] = None
    members: List[str] = []


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    msg_id: int
    chat_id: int
    sender_login: str
    msg_text: str
    msg_timestamp: datetime
    edited_at: Optional[datetime] = None
