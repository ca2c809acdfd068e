import pytest

from messenger.database import create_db_engine, init_db, make_session_factory
from messenger.services import ChatService, ContactService, MessageService, UserService


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def users(db):
    return UserService(db)


@pytest.fixture
def contacts(db):
    return ContactService(db)


@pytest.fixture
def chats(db):
    return ChatService(db)


@pytest.fixture
def messages(db):
    return MessageService(db)


@pytest.fixture
def alice(users):
    return users.register_user("alice", "secret1", "555-0100").login


@pytest.fixture
def bob(users):
    return users.register_user("bob", "secret2", "555-0101").login


@pytest.fixture
def carol(users):
    return users.register_user("carol", "secret3", "555-0102").login


@pytest.fixture
def dave(users):
    return users.register_user("dave", "secret4", "555-0103").login
