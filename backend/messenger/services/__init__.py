from messenger.services.chat import ChatService
from messenger.services.contact import ContactService
from messenger.services.message import MessageHistory, MessageService
from messenger.services.user import UserService

__all__ = [
    "ChatService",
    "ContactService",
    "MessageHistory",
    "MessageService",
    "UserService",
]
