import pytest
from sqlalchemy import func, select

from messenger.exceptions import DatabaseStatementError, UnknownUser
from messenger.models import Chat, ChatMembership, ListKind, ListMembership, Message, User, UserList
from messenger.services import ChatService, UserService


@pytest.fixture
def world(chats, messages, contacts, alice, bob, carol):
    """alice wrote 3 messages in a group chat and started a private chat with carol."""
    group = chats.start_chat(bob, [alice, carol], "hi all").chat_id
    for text in ("one", "two", "three"):
        messages.post_message(group, alice, text)
    messages.post_message(group, carol, "hey")

    private = chats.start_chat(alice, [carol], "psst").chat_id
    messages.post_message(private, carol, "yes?")

    contacts.add_to_list(ListKind.CONTACT, alice, bob)
    contacts.add_to_list(ListKind.BLOCK, alice, carol)
    contacts.add_to_list(ListKind.CONTACT, bob, alice)
    return {"group": group, "private": private}


def scalar(db, query):
    return db.execute(query).scalar()


def test_delete_account_reassigns_initiated_chats(db, users, chats, messages, contacts, world):
    lists = [db.get(User, "alice").contact_list, db.get(User, "alice").block_list]

    users.delete_account("alice")

    assert db.get(User, "alice") is None
    assert scalar(db, select(func.count()).select_from(UserList).where(UserList.list_id.in_(lists))) == 0
    assert scalar(db, select(func.count()).select_from(ListMembership).where(
        ListMembership.list_member == "alice")) == 0
    assert scalar(db, select(func.count()).select_from(Message).where(Message.sender_login == "alice")) == 0
    assert scalar(db, select(func.count()).select_from(ChatMembership).where(
        ChatMembership.member == "alice")) == 0

    # other senders' messages are untouched
    assert [m.msg_text for m in messages.list_messages(world["group"])] == ["hi all", "hey"]

    private = chats.get_chat(world["private"])
    assert private.init_sender == "carol"
    assert private.members == ["carol"]
    assert [m.msg_text for m in messages.list_messages(world["private"])] == ["yes?"]

    assert contacts.list_members(ListKind.CONTACT, "bob") == []


def test_delete_account_with_delete_policy(db, chats, messages, world):
    UserService(db, chat_policy="delete").delete_account("alice")

    assert db.get(Chat, world["private"]) is None
    assert scalar(db, select(func.count()).select_from(Message).where(
        Message.chat_id == world["private"])) == 0
    assert chats.get_members(world["group"]) == ["bob", "carol"]


def test_delete_account_of_unknown_user(users):
    with pytest.raises(UnknownUser):
        users.delete_account("mallory")


def test_failed_deletion_changes_nothing(db, users, monkeypatch, world):
    def broken(self, login, policy):
        raise DatabaseStatementError("simulated failure")

    monkeypatch.setattr(ChatService, "hand_over_chats", broken)

    with pytest.raises(DatabaseStatementError):
        users.delete_account("alice")

    assert db.get(User, "alice") is not None
    assert scalar(db, select(func.count()).select_from(Message).where(Message.sender_login == "alice")) == 4


def test_deleted_login_can_register_again(users, world):
    users.delete_account("alice")

    assert users.register_user("alice", "fresh-start", "555-0200").login == "alice"


def test_chat_with_only_the_deleted_users_messages_is_purged(db, users, chats, messages, alice, bob):
    chat_id = chats.start_chat(alice, [bob], "only alice speaks").chat_id
    messages.post_message(chat_id, alice, "again")

    users.delete_account("alice")

    assert db.get(Chat, chat_id) is None
    assert scalar(db, select(func.count()).select_from(ChatMembership).where(
        ChatMembership.chat_id == chat_id)) == 0
    assert chats.user_chats(bob) == []


def test_joined_chat_emptied_by_deletion_is_purged(db, users, chats, messages, alice, bob, carol):
    quiet = chats.start_chat(bob, [alice], "hello?").chat_id
    opener = next(iter(messages.list_messages(quiet))).msg_id
    messages.post_message(quiet, alice, "hi")
    messages.delete_message(quiet, opener, bob)
    kept = chats.start_chat(carol, [alice], "still here").chat_id

    users.delete_account("alice")

    assert db.get(Chat, quiet) is None
    assert chats.get_members(kept) == ["carol"]
