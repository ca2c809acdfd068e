from datetime import datetime, timedelta

import pytest

from messenger.exceptions import InvalidInput, LastMessageRemoval, NotAMember, NotAuthor, NotFound
from messenger.services import message as message_module


@pytest.fixture
def chat_id(chats, alice, bob):
    return chats.start_chat(alice, [bob], "first").chat_id


def test_post_message(messages, chat_id, bob):
    out = messages.post_message(chat_id, bob, "hello")

    assert out.sender_login == "bob"
    assert out.msg_text == "hello"
    assert out.edited_at is None


def test_non_member_cannot_post(messages, chat_id, carol):
    with pytest.raises(NotAMember):
        messages.post_message(chat_id, carol, "let me in")


def test_post_to_missing_chat(messages, alice):
    with pytest.raises(NotFound):
        messages.post_message(999, alice, "anyone?")


@pytest.mark.parametrize("text", ["", "   ", "x" * 301])
def test_post_rejects_bad_text(messages, chat_id, alice, text):
    with pytest.raises(InvalidInput):
        messages.post_message(chat_id, alice, text)


def test_timestamps_never_go_backwards(monkeypatch, messages, chat_id, alice, bob):
    base = datetime(2030, 1, 1, 12, 0, 0)
    clock = iter([base, base - timedelta(minutes=5), base + timedelta(minutes=1)])
    monkeypatch.setattr(message_module, "utcnow", lambda: next(clock))

    first = messages.post_message(chat_id, alice, "one")
    second = messages.post_message(chat_id, bob, "two")
    third = messages.post_message(chat_id, alice, "three")

    assert first.msg_timestamp == base
    assert second.msg_timestamp == base
    assert third.msg_timestamp == base + timedelta(minutes=1)

    history = list(messages.list_messages(chat_id))
    stamps = [m.msg_timestamp for m in history]
    assert stamps == sorted(stamps)
    assert [m.msg_text for m in history] == ["first", "one", "two", "three"]


def test_edit_by_author(messages, chat_id, alice):
    msg = messages.post_message(chat_id, alice, "typo")

    edited = messages.edit_message(chat_id, msg.msg_id, "fixed", alice)

    assert edited.msg_text == "fixed"
    assert edited.edited_at is not None


def test_edit_by_non_author_leaves_text_unchanged(messages, chat_id, alice, bob):
    msg = messages.post_message(chat_id, alice, "original")

    with pytest.raises(NotAuthor):
        messages.edit_message(chat_id, msg.msg_id, "hacked", bob)

    assert messages.get_message(chat_id, msg.msg_id).msg_text == "original"


def test_edit_message_from_another_chat(chats, messages, chat_id, alice, carol):
    other = chats.start_chat(alice, [carol], "elsewhere")
    msg = messages.post_message(other.chat_id, alice, "not here")

    with pytest.raises(NotFound):
        messages.edit_message(chat_id, msg.msg_id, "moved", alice)


def test_delete_by_author(messages, chat_id, alice):
    msg = messages.post_message(chat_id, alice, "oops")

    messages.delete_message(chat_id, msg.msg_id, alice)

    with pytest.raises(NotFound):
        messages.get_message(chat_id, msg.msg_id)
    with pytest.raises(NotFound):
        messages.delete_message(chat_id, msg.msg_id, alice)


def test_delete_by_non_author(messages, chat_id, alice, bob):
    msg = messages.post_message(chat_id, alice, "mine")

    with pytest.raises(NotAuthor):
        messages.delete_message(chat_id, msg.msg_id, bob)

    assert messages.get_message(chat_id, msg.msg_id).msg_text == "mine"


def test_only_message_of_a_chat_cannot_be_deleted(messages, chat_id, alice):
    first = next(iter(messages.list_messages(chat_id)))

    with pytest.raises(LastMessageRemoval):
        messages.delete_message(chat_id, first.msg_id, alice)

    assert [m.msg_text for m in messages.list_messages(chat_id)] == ["first"]


def test_history_is_lazy_and_restartable(messages, chat_id, alice):
    history = messages.list_messages(chat_id)
    assert [m.msg_text for m in history] == ["first"]

    messages.post_message(chat_id, alice, "second")

    assert [m.msg_text for m in history] == ["first", "second"]
    assert [m.msg_text for m in history] == ["first", "second"]


def test_history_of_missing_chat(messages):
    with pytest.raises(NotFound):
        messages.list_messages(999)


def test_history_pages(messages, chat_id, alice):
    for i in range(5):
        messages.post_message(chat_id, alice, f"m{i}")
    history = messages.list_messages(chat_id)

    latest = history.page(limit=3)
    assert [m.msg_text for m in latest] == ["m2", "m3", "m4"]

    earlier = history.page(limit=3, before_id=latest[0].msg_id)
    assert [m.msg_text for m in earlier] == ["first", "m0", "m1"]

    assert history.page(limit=3, before_id=earlier[0].msg_id) == []
