"""Console front-end: the menu loop a user drives after connecting."""
import argparse
import logging
import sys
from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from messenger.config import settings
from messenger.database import create_db_engine, init_db, session_scope
from messenger.exceptions import DatabaseError, DomainError
from messenger.models import ListKind
from messenger.services.chat import ChatService
from messenger.services.contact import ContactService
from messenger.services.message import MessageService
from messenger.services.user import UserService
from messenger.utils.helpers import format_datetime, truncate_string, utcnow
from messenger.utils.logger import setup_logger

logger = setup_logger(__name__)

GREETING = (
    "\n\n*******************************************************\n"
    "              User Interface                            \n"
    "*******************************************************\n"
)


class MessengerConsole:
    """Nested menus over the domain services for one database session."""

    def __init__(
        self,
        db: Session,
        input_func: Optional[Callable[[str], str]] = None,
        print_func: Optional[Callable[..., None]] = None
    ):
        self.users = UserService(db)
        self.contacts = ContactService(db)
        self.chats = ChatService(db)
        self.messages = MessageService(db)
        self._input = input_func or input
        self._print = print_func or print

    # Input helpers

    def _prompt(self, label: str) -> str:
        return self._input(f"\t{label}: ").strip()

    def _read_choice(self) -> int:
        """Read a menu choice, asking again until it is a number."""
        while True:
            try:
                return int(self._input("Please make your choice: "))
            except ValueError:
                self._print("Your input is invalid!")

    def _read_int(self, label: str) -> Optional[int]:
        value = self._prompt(label)
        try:
            return int(value)
        except ValueError:
            self._print(f"'{value}' is not a number")
            return None

    def _read_logins(self, label: str) -> List[str]:
        return [login.strip() for login in self._prompt(label).split(",") if login.strip()]

    def _attempt(self, operation: Callable, *args, **kwargs) -> Tuple[bool, object]:
        """Run an operation, reporting refusals and database failures instead of raising."""
        try:
            return True, operation(*args, **kwargs)
        except DomainError as e:
            self._print(f"Error: {e}")
        except DatabaseError as e:
            logger.error(f"{operation.__name__} failed: {e}")
            self._print(f"Database error: {e}")
        return False, None

    # Main menu

    def run(self) -> None:
        self._print(GREETING)
        # Leftovers of sessions that never reached discard_incomplete_chats
        cutoff = utcnow() - timedelta(minutes=settings.STALE_CHAT_MINUTES)
        self._attempt(self.chats.sweep_incomplete_chats, cutoff)
        try:
            keepon = True
            while keepon:
                self._print("MAIN MENU")
                self._print("---------")
                self._print("1. Create user")
                self._print("2. Log in")
                self._print("9. < EXIT")
                choice = self._read_choice()
                if choice == 1:
                    self.create_user()
                elif choice == 2:
                    login = self.log_in()
                    if login is not None:
                        self.user_menu(login)
                elif choice == 9:
                    keepon = False
                else:
                    self._print("Unrecognized choice!")
        except EOFError:
            self._print("")
        finally:
            self._attempt(self.chats.discard_incomplete_chats)

    def create_user(self) -> None:
        login = self._prompt("Enter user login")
        password = self._prompt("Enter user password")
        phone = self._prompt("Enter user phone")
        ok, _ = self._attempt(self.users.register_user, login, password, phone)
        if ok:
            self._print("User successfully created!")

    def log_in(self) -> Optional[str]:
        login = self._prompt("Enter user login")
        password = self._prompt("Enter user password")
        ok, result = self._attempt(self.users.authenticate, login, password)
        return result if ok else None

    # User menu

    def user_menu(self, login: str) -> None:
        actions = {
            1: lambda: self.add_to_list(login, ListKind.CONTACT),
            2: lambda: self.browse_list(login, ListKind.CONTACT),
            3: lambda: self.new_message(login),
            4: lambda: self.browse_list(login, ListKind.BLOCK),
            5: lambda: self.browse_chats(login),
            6: lambda: self.new_chat(login),
            7: lambda: self.open_chat(login),
            10: lambda: self.add_to_list(login, ListKind.BLOCK),
            11: lambda: self.remove_from_list(login, ListKind.CONTACT),
            12: lambda: self.remove_from_list(login, ListKind.BLOCK),
            13: lambda: self.update_status(login),
        }
        try:
            while True:
                self._print("MAIN MENU")
                self._print("---------")
                self._print("1. Add to contact list")
                self._print("2. Browse contact list")
                self._print("3. Write a new message")
                self._print("4. Browse blocked list")
                self._print("5. Browse current chats")
                self._print("6. Create a new chat")
                self._print("7. Open a chat")
                self._print("8. Delete account")
                self._print("10. Add to blocked list")
                self._print("11. Remove from contact list")
                self._print("12. Remove from blocked list")
                self._print("13. Update status")
                self._print(".........................")
                self._print("9. Log out")
                choice = self._read_choice()
                if choice == 9:
                    return
                if choice == 8:
                    if self.delete_account(login):
                        return
                elif choice in actions:
                    actions[choice]()
                else:
                    self._print("Unrecognized choice!")
        finally:
            self._attempt(self.chats.discard_incomplete_chats)

    def add_to_list(self, login: str, kind: ListKind) -> None:
        target = self._prompt("Enter login of user to add")
        ok, _ = self._attempt(self.contacts.add_to_list, kind, login, target)
        if ok:
            self._print(f"{target} added to your {kind.value} list")

    def remove_from_list(self, login: str, kind: ListKind) -> None:
        target = self._prompt("Enter login of user to remove")
        ok, removed = self._attempt(self.contacts.remove_from_list, kind, login, target)
        if ok and not removed:
            self._print(f"{target} is not in your {kind.value} list")

    def browse_list(self, login: str, kind: ListKind) -> None:
        ok, members = self._attempt(self.contacts.list_members, kind, login)
        if not ok:
            return
        if not members:
            self._print(f"Your {kind.value} list is empty")
        for member in members:
            self._print(member)

    def browse_chats(self, login: str) -> None:
        ok, chats = self._attempt(self.chats.user_chats, login)
        if not ok:
            return
        if not chats:
            self._print("You have no chats")
        for chat in chats:
            self._print(
                f"{chat.chat_id}\t{chat.chat_type}\t{chat.init_sender}\t{', '.join(chat.members)}"
            )

    def new_message(self, login: str) -> None:
        """Start a conversation and send its first message in one step."""
        members = self._read_logins("Enter recipients (comma separated)")
        text = self._prompt("Enter message")
        ok, chat = self._attempt(self.chats.start_chat, login, members, text)
        if ok:
            self._print(f"Message sent in chat {chat.chat_id}")

    def new_chat(self, login: str) -> None:
        """Create a chat step by step; it is discarded at logout unless completed."""
        ok, chat_id = self._attempt(self.chats.create_chat, login)
        if not ok:
            return
        self._print(f"Chat {chat_id} created")
        for member in self._read_logins("Enter members to add (comma separated)"):
            self._attempt(self.chats.add_member, chat_id, member, requester=login)
        text = self._prompt("Enter first message")
        self._attempt(self.messages.post_message, chat_id, login, text)
        ok, complete = self._attempt(self.chats.is_complete, chat_id)
        if ok and not complete:
            self._print("The chat needs another member and a message; it will be discarded at log out")

    def update_status(self, login: str) -> None:
        status = self._prompt("Enter new status")
        ok, _ = self._attempt(self.users.update_status, login, status)
        if ok:
            self._print("Status updated")

    def delete_account(self, login: str) -> bool:
        confirm = self._prompt(f"Type '{login}' to confirm account deletion")
        if confirm != login:
            self._print("Account deletion cancelled")
            return False
        ok, _ = self._attempt(self.users.delete_account, login)
        if ok:
            self._print("Account deleted")
        return ok

    # Chat menu

    def open_chat(self, login: str) -> None:
        chat_id = self._read_int("Enter chat id")
        if chat_id is None:
            return
        ok, chat = self._attempt(self.chats.get_chat, chat_id)
        if not ok:
            return
        if login not in chat.members:
            self._print(f"You are not a member of chat {chat_id}")
            return

        while True:
            self._print(f"CHAT {chat_id}")
            self._print("---------")
            self._print("1. Show messages")
            self._print("2. Write a message")
            self._print("3. Edit a message")
            self._print("4. Delete a message")
            self._print("5. Add members")
            self._print("6. Remove a member")
            self._print("7. Delete chat")
            self._print(".........................")
            self._print("9. Back")
            choice = self._read_choice()
            if choice == 1:
                self.show_messages(chat_id)
            elif choice == 2:
                text = self._prompt("Enter message")
                self._attempt(self.messages.post_message, chat_id, login, text)
            elif choice == 3:
                msg_id = self._read_int("Enter message id")
                if msg_id is not None:
                    text = self._prompt("Enter new text")
                    self._attempt(self.messages.edit_message, chat_id, msg_id, text, login)
            elif choice == 4:
                msg_id = self._read_int("Enter message id")
                if msg_id is not None:
                    self._attempt(self.messages.delete_message, chat_id, msg_id, login)
            elif choice == 5:
                for member in self._read_logins("Enter members to add (comma separated)"):
                    self._attempt(self.chats.add_member, chat_id, member, requester=login)
            elif choice == 6:
                member = self._prompt("Enter member to remove")
                ok, _ = self._attempt(self.chats.remove_member, chat_id, member, requester=login)
                if ok and member == login:
                    return
            elif choice == 7:
                ok, _ = self._attempt(self.chats.delete_chat, chat_id, requester=login)
                if ok:
                    self._print(f"Chat {chat_id} deleted")
                    return
            elif choice == 9:
                return
            else:
                self._print("Unrecognized choice!")

    def show_messages(self, chat_id: int) -> None:
        """Print the latest page, then earlier pages on request."""
        ok, history = self._attempt(self.messages.list_messages, chat_id)
        if not ok:
            return
        before_id = None
        while True:
            ok, page = self._attempt(history.page, settings.MESSAGE_PAGE_SIZE, before_id)
            if not ok:
                return
            if not page:
                self._print("No more messages")
                return
            for message in page:
                edited = " (edited)" if message.edited_at else ""
                self._print(
                    f"[{message.msg_id}] {format_datetime(message.msg_timestamp)} "
                    f"{message.sender_login}: {truncate_string(message.msg_text, 80)}{edited}"
                )
            if len(page) < settings.MESSAGE_PAGE_SIZE:
                return
            if self._prompt("Load earlier messages? (y/n)").lower() != "y":
                return
            before_id = page[0].msg_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="messenger", description="Console messenger")
    parser.add_argument(
        "--database-url",
        default=settings.DATABASE_URL,
        help="SQLAlchemy database URL (default: %(default)s)"
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: %(default)s)"
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing tables before starting"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Module loggers were configured at import time with the default level
    for name, existing in list(logging.root.manager.loggerDict.items()):
        if name.startswith("messenger") and isinstance(existing, logging.Logger) and existing.handlers:
            setup_logger(name, args.log_level)

    try:
        engine = create_db_engine(args.database_url)
        if args.init_db:
            init_db(engine)
    except Exception as e:
        logger.error(f"Unable to connect to database: {e}")
        print(f"Error - Unable to Connect to Database: {e}", file=sys.stderr)
        return 1

    with session_scope(engine) as db:
        try:
            MessengerConsole(db).run()
        except KeyboardInterrupt:
            print()
    print("Disconnecting from database... Done\n\nBye !")
    return 0


if __name__ == "__main__":
    sys.exit(main())
