"""Chat service."""
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.orm import Session

from messenger.database import transaction
from messenger.exceptions import (
    DuplicateMembership,
    InvalidInput,
    LastMemberRemoval,
    NotAMember,
    NotFound,
    NotInitSender,
    UnknownUser,
)
from messenger.models import Chat, ChatMembership, ChatType, Message, User
from messenger.schemas import ChatOut
from messenger.services.message import MessageService
from messenger.utils.logger import setup_logger

logger = setup_logger(__name__)


class ChatService:
    """Chat service for business logic."""

    def __init__(self, db: Session):
        self.db = db
        # Chats created by this service that may still lack members or messages
        self._pending: Set[int] = set()

    def _require_chat(self, chat_id: int) -> Chat:
        chat = self.db.get(Chat, chat_id)
        if chat is None:
            raise NotFound(f"Chat {chat_id} not found")
        return chat

    def _require_user(self, login: str) -> None:
        if self.db.get(User, login) is None:
            raise UnknownUser(f"User '{login}' does not exist")

    def _check_requester(self, chat: Chat, requester: Optional[str]) -> None:
        if requester is not None and requester != chat.init_sender:
            raise NotInitSender(
                f"Only '{chat.init_sender}' can change chat {chat.chat_id}"
            )

    def _member_logins(self, chat_id: int) -> List[str]:
        result = self.db.execute(
            select(ChatMembership.member)
            .where(ChatMembership.chat_id == chat_id)
            .order_by(ChatMembership.joined_at, ChatMembership.member)
        )
        return list(result.scalars().all())

    def _member_count(self, chat_id: int) -> int:
        return self.db.execute(
            select(func.count()).select_from(ChatMembership)
            .where(ChatMembership.chat_id == chat_id)
        ).scalar()

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

    def _to_out(self, chat: Chat) -> ChatOut:
        return ChatOut(
            chat_id=chat.chat_id,
            chat_type=chat.chat_type,
            init_sender=chat.init_sender,
            created_at=chat.created_at,
            members=self._member_logins(chat.chat_id)
        )

    def _insert_chat(self, init_sender: str) -> Chat:
        self._require_user(init_sender)

        chat = Chat(chat_type=ChatType.PRIVATE.value, init_sender=init_sender)
        self.db.add(chat)
        self.db.flush()

        self.db.add(ChatMembership(chat_id=chat.chat_id, member=init_sender))
        self.db.flush()
        return chat

    def _insert_member(self, chat: Chat, login: str) -> None:
        self._require_user(login)
        if self._is_member(chat.chat_id, login):
            raise DuplicateMembership(f"'{login}' is already in chat {chat.chat_id}")

        self.db.add(ChatMembership(chat_id=chat.chat_id, member=login))
        self.db.flush()

        # private -> group only, never back
        if self._member_count(chat.chat_id) > 2 and chat.chat_type != ChatType.GROUP.value:
            chat.chat_type = ChatType.GROUP.value
            logger.info(f"Chat {chat.chat_id} promoted to group")

    def purge_chat(self, chat_id: int) -> int:
        """Delete a chat with its members and messages. Caller owns the transaction."""
        self.db.execute(delete(ChatMembership).where(ChatMembership.chat_id == chat_id))
        self.db.execute(delete(Message).where(Message.chat_id == chat_id))
        result = self.db.execute(delete(Chat).where(Chat.chat_id == chat_id))
        self._pending.discard(chat_id)
        return result.rowcount

    def create_chat(self, init_sender: str) -> int:
        """Create a private chat whose only member is the sender."""
        with transaction(self.db):
            chat = self._insert_chat(init_sender)

        self._pending.add(chat.chat_id)
        logger.info(f"Chat {chat.chat_id} created by {init_sender}")
        return chat.chat_id

    def start_chat(
        self,
        init_sender: str,
        members: Iterable[str],
        text: str
    ) -> ChatOut:
        """Create a chat, add its members and post the first message at once."""
        others = [login for login in dict.fromkeys(members) if login != init_sender]
        if not others:
            raise InvalidInput("A chat needs at least one other member")

        with transaction(self.db):
            chat = self._insert_chat(init_sender)
            for login in others:
                self._insert_member(chat, login)
            MessageService(self.db).insert_message(chat.chat_id, init_sender, text)
            out = self._to_out(chat)

        logger.info(f"Chat {chat.chat_id} started by {init_sender} with {', '.join(others)}")
        return out

    def get_chat(self, chat_id: int) -> ChatOut:
        """Get chat by ID."""
        with transaction(self.db):
            return self._to_out(self._require_chat(chat_id))

    def get_members(self, chat_id: int) -> List[str]:
        """Member logins in joining order."""
        with transaction(self.db):
            self._require_chat(chat_id)
            return self._member_logins(chat_id)

    def user_chats(self, login: str) -> List[ChatOut]:
        """Chats the user is a member of."""
        with transaction(self.db):
            self._require_user(login)
            chats = self.db.execute(
                select(Chat)
                .join(ChatMembership, ChatMembership.chat_id == Chat.chat_id)
                .where(ChatMembership.member == login)
                .order_by(Chat.chat_id)
            ).scalars().all()
            return [self._to_out(chat) for chat in chats]

    def add_member(self, chat_id: int, login: str, requester: Optional[str] = None) -> None:
        """Add participant to chat."""
        with transaction(self.db):
            chat = self._require_chat(chat_id)
            self._check_requester(chat, requester)
            self._insert_member(chat, login)

        logger.info(f"{login} joined chat {chat_id}")

    def remove_member(self, chat_id: int, login: str, requester: Optional[str] = None) -> None:
        """Remove participant from chat."""
        with transaction(self.db):
            chat = self._require_chat(chat_id)
            # Members may always leave on their own
            if requester != login:
                self._check_requester(chat, requester)
            if not self._is_member(chat_id, login):
                raise NotAMember(f"'{login}' is not a member of chat {chat_id}")
            if self._member_count(chat_id) == 1:
                raise LastMemberRemoval(
                    f"'{login}' is the last member of chat {chat_id}; delete the chat instead"
                )

            self.db.execute(
                delete(ChatMembership).where(
                    and_(
                        ChatMembership.chat_id == chat_id,
                        ChatMembership.member == login
                    )
                )
            )

            if chat.init_sender == login:
                chat.init_sender = self._member_logins(chat_id)[0]
                logger.info(f"Chat {chat_id} handed over to {chat.init_sender}")

        logger.info(f"{login} left chat {chat_id}")

    def delete_chat(self, chat_id: int, requester: Optional[str] = None) -> None:
        """Delete a chat together with its members and messages."""
        with transaction(self.db):
            chat = self._require_chat(chat_id)
            self._check_requester(chat, requester)
            self.purge_chat(chat_id)

        logger.info(f"Chat {chat_id} deleted")

    def _has_messages(self, chat_id: int) -> bool:
        return self.db.execute(
            select(Message.msg_id).where(Message.chat_id == chat_id).limit(1)
        ).first() is not None

    def hand_over_chats(self, login: str, policy: str) -> None:
        """Resolve the chats `login` initiated before the account goes away.

        Runs after the user's messages are gone. With the "reassign" policy the
        earliest-joined remaining member becomes init_sender and the history is
        kept. Chats with nobody left or no message left, and every chat under
        the "delete" policy, are purged. Caller owns the transaction.
        """
        chat_ids = self.db.execute(
            select(Chat.chat_id).where(Chat.init_sender == login)
        ).scalars().all()

        for chat_id in chat_ids:
            others = [m for m in self._member_logins(chat_id) if m != login]
            if policy == "reassign" and others and self._has_messages(chat_id):
                self.db.execute(
                    update(Chat).where(Chat.chat_id == chat_id).values(init_sender=others[0])
                )
                logger.info(f"Chat {chat_id} handed over to {others[0]}")
            else:
                self.purge_chat(chat_id)
                logger.info(f"Chat {chat_id} deleted with its initiator {login}")

    def purge_emptied_chats(self, login: str) -> List[int]:
        """Purge chats `login` belongs to that no longer hold any message.

        Used after the user's messages were deleted. Caller owns the transaction.
        """
        chat_ids = self.db.execute(
            select(ChatMembership.chat_id).where(ChatMembership.member == login)
        ).scalars().all()

        purged = [chat_id for chat_id in chat_ids if not self._has_messages(chat_id)]
        for chat_id in purged:
            self.purge_chat(chat_id)
            logger.info(f"Chat {chat_id} deleted, no messages left")
        return purged

    def is_complete(self, chat_id: int) -> bool:
        """A chat is complete once it has two members and a message."""
        with transaction(self.db):
            self._require_chat(chat_id)
            return self._is_complete(chat_id)

    def _is_complete(self, chat_id: int) -> bool:
        return self._member_count(chat_id) >= 2 and self._has_messages(chat_id)

    def sweep_incomplete_chats(self, created_before: datetime) -> List[int]:
        """Delete chats older than `created_before` that never got a message.

        Catches chats left behind by a session that ended without
        discard_incomplete_chats, e.g. a killed process.
        """
        with transaction(self.db):
            chat_ids = self.db.execute(
                select(Chat.chat_id)
                .where(Chat.created_at < created_before)
                .where(~select(Message.msg_id).where(Message.chat_id == Chat.chat_id).exists())
                .order_by(Chat.chat_id)
            ).scalars().all()
            for chat_id in chat_ids:
                self.purge_chat(chat_id)

        if chat_ids:
            logger.info(f"Swept incomplete chats: {list(chat_ids)}")
        return list(chat_ids)

    def discard_incomplete_chats(self) -> List[int]:
        """Delete chats created here that never got a second member or a message."""
        discarded = []
        with transaction(self.db):
            for chat_id in sorted(self._pending):
                if self.db.get(Chat, chat_id) is None:
                    continue
                if not self._is_complete(chat_id):
                    self.purge_chat(chat_id)
                    discarded.append(chat_id)
            self._pending.clear()

        if discarded:
            logger.info(f"Discarded incomplete chats: {discarded}")
        return discarded
