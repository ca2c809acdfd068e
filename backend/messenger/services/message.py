"""Message service."""
from typing import Iterator, List, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from messenger.database import transaction
from messenger.exceptions import InvalidInput, LastMessageRemoval, NotAMember, NotAuthor, NotFound
from messenger.models import Chat, ChatMembership, Message
from messenger.schemas import MessageOut
from messenger.utils.helpers import utcnow
from messenger.utils.logger import setup_logger
from messenger.utils.validators import validate_message_text

logger = setup_logger(__name__)


class MessageHistory:
    """Messages of one chat, oldest first.

    Nothing is loaded until iteration starts, and every iteration runs the
    query again, so the history can be replayed after new messages arrive.
    """

    def __init__(self, db: Session, chat_id: int):
        self.db = db
        self.chat_id = chat_id

    def _query(self):
        return (
            select(Message)
            .where(Message.chat_id == self.chat_id)
            .order_by(Message.msg_timestamp, Message.msg_id)
        )

    def __iter__(self) -> Iterator[MessageOut]:
        with transaction(self.db):
            messages = self.db.execute(self._query()).scalars().all()
        for message in messages:
            yield MessageOut.model_validate(message)

    def page(self, limit: int, before_id: Optional[int] = None) -> List[MessageOut]:
        """Up to `limit` messages preceding `before_id`, in chronological order."""
        query = (
            select(Message)
            .where(Message.chat_id == self.chat_id)
            .order_by(Message.msg_timestamp.desc(), Message.msg_id.desc())
            .limit(limit)
        )
        with transaction(self.db):
            return self._page(query, before_id)

    def _page(self, query, before_id: Optional[int]) -> List[MessageOut]:
        if before_id is not None:
            anchor = self.db.get(Message, before_id)
            if anchor is None or anchor.chat_id != self.chat_id:
                raise NotFound(f"Message {before_id} not found in chat {self.chat_id}")
            query = query.where(
                (Message.msg_timestamp < anchor.msg_timestamp)
                | and_(
                    Message.msg_timestamp == anchor.msg_timestamp,
                    Message.msg_id < anchor.msg_id
                )
            )

        messages = self.db.execute(query).scalars().all()
        return [MessageOut.model_validate(msg) for msg in reversed(messages)]


class MessageService:
    """Message service for business logic."""

    def __init__(self, db: Session):
        self.db = db

    def _require_chat(self, chat_id: int) -> Chat:
        chat = self.db.get(Chat, chat_id)
        if chat is None:
            raise NotFound(f"Chat {chat_id} not found")
        return chat

    def _is_member(self, chat_id: int, login: str) -> bool:
        result = self.db.execute(
            select(ChatMembership).where(
                and_(
                    ChatMembership.chat_id == chat_id,
                    ChatMembership.member == login
                )
            )
        )
        return result.scalar_one_or_none() is not None

    def _get_message(self, chat_id: int, msg_id: int) -> Message:
        message = self.db.get(Message, msg_id)
        if message is None or message.chat_id != chat_id:
            raise NotFound(f"Message {msg_id} not found in chat {chat_id}")
        return message

    def _check_text(self, text: str) -> None:
        ok, error = validate_message_text(text)
        if not ok:
            raise InvalidInput(error)

    def insert_message(self, chat_id: int, sender_login: str, text: str) -> Message:
        """Insert a message without committing. Caller owns the transaction."""
        self._require_chat(chat_id)
        if not self._is_member(chat_id, sender_login):
            raise NotAMember(f"'{sender_login}' is not a member of chat {chat_id}")
        self._check_text(text)

        # Never earlier than the latest message already in the chat
        last = self.db.execute(
            select(func.max(Message.msg_timestamp)).where(Message.chat_id == chat_id)
        ).scalar()
        timestamp = utcnow()
        if last is not None and last > timestamp:
            timestamp = last

        message = Message(
            chat_id=chat_id,
            sender_login=sender_login,
            msg_text=text,
            msg_timestamp=timestamp
        )
        self.db.add(message)
        self.db.flush()
        return message

    def post_message(self, chat_id: int, sender_login: str, text: str) -> MessageOut:
        """Post a new message to a chat."""
        with transaction(self.db):
            message = self.insert_message(chat_id, sender_login, text)
        return MessageOut.model_validate(message)

    def get_message(self, chat_id: int, msg_id: int) -> MessageOut:
        """Get message by ID."""
        with transaction(self.db):
            return MessageOut.model_validate(self._get_message(chat_id, msg_id))

    def edit_message(
        self,
        chat_id: int,
        msg_id: int,
        new_text: str,
        requester_login: str
    ) -> MessageOut:
        """Replace message text. Only the author may edit."""
        with transaction(self.db):
            message = self._get_message(chat_id, msg_id)
            if message.sender_login != requester_login:
                raise NotAuthor(f"'{requester_login}' is not the author of message {msg_id}")
            self._check_text(new_text)

            message.msg_text = new_text
            message.edited_at = utcnow()

        return MessageOut.model_validate(message)

    def delete_message(self, chat_id: int, msg_id: int, requester_login: str) -> None:
        """Delete a message. Only the author may delete."""
        with transaction(self.db):
            message = self._get_message(chat_id, msg_id)
            if message.sender_login != requester_login:
                raise NotAuthor(f"'{requester_login}' is not the author of message {msg_id}")
            remaining = self.db.execute(
                select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
            ).scalar()
            if remaining == 1:
                raise LastMessageRemoval(
                    f"Message {msg_id} is the only message of chat {chat_id}; delete the chat instead"
                )

            self.db.execute(delete(Message).where(Message.msg_id == msg_id))

        logger.info(f"Message {msg_id} deleted from chat {chat_id}")

    def list_messages(self, chat_id: int) -> MessageHistory:
        """History of a chat, ordered by timestamp ascending."""
        with transaction(self.db):
            self._require_chat(chat_id)
        return MessageHistory(self.db, chat_id)
