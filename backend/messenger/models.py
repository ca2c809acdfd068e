import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from messenger.utils.helpers import utcnow

Base = declarative_base()


class ListKind(str, enum.Enum):
    CONTACT = "contact"
    BLOCK = "block"


class ChatType(str, enum.Enum):
    PRIVATE = "private"
    GROUP = "group"


class UserList(Base):
    __tablename__ = "user_list"

    list_id = Column(Integer, primary_key=True, autoincrement=True)
    list_type = Column(String(10), nullable=False)

    members = relationship("ListMembership", back_populates="user_list")

    __table_args__ = (
        CheckConstraint("list_type IN ('contact', 'block')", name="list_type_check"),
    )


class User(Base):
    __tablename__ = "usr"

    login = Column(String(50), primary_key=True)
    password = Column(String(255), nullable=False)
    phone_num = Column(String(16))
    status = Column(String(140))
    # Each list belongs to exactly one user
    contact_list = Column(Integer, ForeignKey("user_list.list_id"), unique=True, nullable=False)
    block_list = Column(Integer, ForeignKey("user_list.list_id"), unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    messages = relationship("Message", back_populates="sender")

    __table_args__ = (
        CheckConstraint("contact_list <> block_list", name="distinct_lists_check"),
    )


class ListMembership(Base):
    __tablename__ = "user_list_contains"

    list_id = Column(Integer, ForeignKey("user_list.list_id"), primary_key=True)
    list_member = Column(String(50), ForeignKey("usr.login"), primary_key=True)

    user_list = relationship("UserList", back_populates="members")


class Chat(Base):
    __tablename__ = "chat"

    chat_id = Column(Integer, primary_key=True, autoincrement=True)
    chat_type = Column(String(10), nullable=False, default=ChatType.PRIVATE.value)
    init_sender = Column(String(50), ForeignKey("usr.login"), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    participants = relationship("ChatMembership", back_populates="chat")
    messages = relationship("Message", back_populates="chat")

    __table_args__ = (
        CheckConstraint("chat_type IN ('private', 'group')", name="chat_type_check"),
    )


class ChatMembership(Base):
    __tablename__ = "chat_list"

    chat_id = Column(Integer, ForeignKey("chat.chat_id"), primary_key=True)
    member = Column(String(50), ForeignKey("usr.login"), primary_key=True)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    chat = relationship("Chat", back_populates="participants")


class Message(Base):
    __tablename__ = "message"

    msg_id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(Integer, ForeignKey("chat.chat_id"), nullable=False)
    sender_login = Column(String(50), ForeignKey("usr.login"), nullable=False)
    msg_text = Column(Text, nullable=False)
    msg_timestamp = Column(DateTime, nullable=False)
    edited_at = Column(DateTime)

    chat = relationship("Chat", back_populates="messages")
    sender = relationship("User", back_populates="messages")

    __table_args__ = (
        Index("ix_message_chat_timestamp", "chat_id", "msg_timestamp"),
    )
