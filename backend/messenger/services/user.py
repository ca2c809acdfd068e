"""User service: registration, authentication and account removal."""
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from messenger.config import settings
from messenger.database import transaction
from messenger.exceptions import (
    DuplicateLogin,
    InvalidCredentials,
    InvalidInput,
    UnknownUser,
)
from messenger.models import ChatMembership, ListKind, ListMembership, Message, User, UserList
from messenger.schemas import UserOut
from messenger.services.chat import ChatService
from messenger.utils.logger import setup_logger
from messenger.utils.validators import (
    validate_login,
    validate_password_strength,
    validate_phone,
    validate_status,
)

logger = setup_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=settings.PASSWORD_SCHEMES, deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class UserService:
    """User accounts and the two lists each of them owns."""

    def __init__(self, db: Session, chat_policy: Optional[str] = None):
        self.db = db
        self.chat_policy = chat_policy or settings.INIT_SENDER_CHAT_POLICY

    def _require_user(self, login: str) -> User:
        user = self.db.get(User, login)
        if user is None:
            raise UnknownUser(f"User '{login}' does not exist")
        return user

    def register_user(self, login: str, password: str, phone: str) -> UserOut:
        """Create the user together with an empty contact list and block list."""
        if not validate_login(login):
            raise InvalidInput("Login must be 3-50 letters, digits or underscores")
        if not validate_phone(phone):
            raise InvalidInput(f"Invalid phone number: {phone!r}")
        ok, error = validate_password_strength(password)
        if not ok:
            raise InvalidInput(error)

        with transaction(self.db):
            if self.db.get(User, login) is not None:
                raise DuplicateLogin(f"Login '{login}' is already taken")

            # Lists first, the user row references both
            contact_list = UserList(list_type=ListKind.CONTACT.value)
            block_list = UserList(list_type=ListKind.BLOCK.value)
            self.db.add_all([contact_list, block_list])
            self.db.flush()

            user = User(
                login=login,
                password=get_password_hash(password),
                phone_num=phone,
                contact_list=contact_list.list_id,
                block_list=block_list.list_id
            )
            self.db.add(user)

        logger.info(f"User registered: {login}")
        return UserOut.model_validate(user)

    def authenticate(self, login: str, password: str) -> str:
        """Return the login when the password matches."""
        with transaction(self.db):
            hashed = self.db.execute(
                select(User.password).where(User.login == login)
            ).scalar_one_or_none()

        if hashed is None:
            # Same work as a real check so unknown logins are not distinguishable
            pwd_context.dummy_verify()
            valid = False
        else:
            valid = verify_password(password, hashed)

        if not valid:
            logger.warning(f"Failed login attempt for {login!r}")
            raise InvalidCredentials()
        return login

    def get_user(self, login: str) -> UserOut:
        """Get user by login."""
        with transaction(self.db):
            return UserOut.model_validate(self._require_user(login))

    def update_status(self, login: str, status: str) -> UserOut:
        """Set the user's status text."""
        if not validate_status(status):
            raise InvalidInput("Status text is too long")

        with transaction(self.db):
            user = self._require_user(login)
            user.status = status or None

        return UserOut.model_validate(user)

    def delete_account(self, login: str) -> None:
        """Remove the user and everything that references it, in one transaction."""
        with transaction(self.db):
            user = self._require_user(login)
            own_lists = [user.contact_list, user.block_list]

            self.db.execute(delete(Message).where(Message.sender_login == login))
            chats = ChatService(self.db)
            chats.hand_over_chats(login, self.chat_policy)
            chats.purge_emptied_chats(login)
            self.db.execute(delete(ChatMembership).where(ChatMembership.member == login))
            self.db.execute(
                delete(ListMembership).where(
                    or_(
                        ListMembership.list_member == login,
                        ListMembership.list_id.in_(own_lists)
                    )
                )
            )
            self.db.execute(delete(User).where(User.login == login))
            self.db.execute(delete(UserList).where(UserList.list_id.in_(own_lists)))

        logger.info(f"Account deleted: {login}")
