"""Messenger error kinds."""


class MessengerError(Exception):
    """Base class for every error a messenger operation reports."""

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)


class DomainError(MessengerError):
    """Expected outcome of an operation that was refused."""


class DuplicateLogin(DomainError):
    """Login is already registered."""


class InvalidCredentials(DomainError):
    """Invalid login or password."""


class UnknownUser(DomainError):
    """No such user."""


class DuplicateMembership(DomainError):
    """User is already a member."""


class NotAMember(DomainError):
    """User is not a member of this chat."""


class NotFound(DomainError):
    """Not found."""


class NotAuthor(DomainError):
    """Only the author can change this message."""


class LastMemberRemoval(DomainError):
    """Cannot remove the last member of a chat."""


class LastMessageRemoval(DomainError):
    """Cannot delete the only message of a chat."""


class NotInitSender(DomainError):
    """Only the chat initiator can change this chat."""


class InvalidInput(DomainError):
    """Invalid input."""


class DatabaseError(MessengerError):
    """Database operation failed."""


class DatabaseConnectionError(DatabaseError):
    """Database connection failed."""


class DatabaseStatementError(DatabaseError):
    """Database statement failed."""
