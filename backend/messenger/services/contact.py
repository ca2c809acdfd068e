"""Contact and block list service."""
from typing import List

from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from messenger.database import transaction
from messenger.exceptions import DuplicateMembership, UnknownUser
from messenger.models import ListKind, ListMembership, User
from messenger.utils.logger import setup_logger

logger = setup_logger(__name__)


class ContactService:
    """Manages the contact and block lists every user owns."""

    def __init__(self, db: Session):
        self.db = db

    def _list_id(self, kind: ListKind, owner_login: str) -> int:
        """Resolve the id of the owner's contact or block list."""
        column = User.contact_list if ListKind(kind) is ListKind.CONTACT else User.block_list
        list_id = self.db.execute(
            select(column).where(User.login == owner_login)
        ).scalar_one_or_none()
        if list_id is None:
            raise UnknownUser(f"User '{owner_login}' does not exist")
        return list_id

    def _is_listed(self, list_id: int, login: str) -> bool:
        result = self.db.execute(
            select(ListMembership).where(
                and_(
                    ListMembership.list_id == list_id,
                    ListMembership.list_member == login
                )
            )
        )
        return result.scalar_one_or_none() is not None

    def add_to_list(self, kind: ListKind, owner_login: str, target_login: str) -> None:
        """Add a user to the owner's contact or block list."""
        with transaction(self.db):
            list_id = self._list_id(kind, owner_login)

            target = self.db.get(User, target_login)
            if target is None:
                raise UnknownUser(f"User '{target_login}' does not exist")

            if self._is_listed(list_id, target_login):
                raise DuplicateMembership(
                    f"'{target_login}' is already in the {ListKind(kind).value} list"
                )

            self.db.add(ListMembership(list_id=list_id, list_member=target_login))

        logger.info(f"{owner_login} added {target_login} to {ListKind(kind).value} list")

    def remove_from_list(self, kind: ListKind, owner_login: str, target_login: str) -> bool:
        """Remove a user from a list. Absent entries are not an error."""
        with transaction(self.db):
            list_id = self._list_id(kind, owner_login)
            result = self.db.execute(
                delete(ListMembership).where(
                    and_(
                        ListMembership.list_id == list_id,
                        ListMembership.list_member == target_login
                    )
                )
            )
        return result.rowcount > 0

    def list_members(self, kind: ListKind, owner_login: str) -> List[str]:
        """Logins in the owner's list."""
        with transaction(self.db):
            list_id = self._list_id(kind, owner_login)
            result = self.db.execute(
                select(ListMembership.list_member)
                .where(ListMembership.list_id == list_id)
                .order_by(ListMembership.list_member)
            )
            return list(result.scalars().all())
