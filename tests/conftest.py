from __future__ import annotations

import pytest
import pytest_asyncio

from citylocal.database import Base, make_engine, make_session_factory
from citylocal.models import ROLE_ADMIN, ROLE_USER, Business, Category, User
from citylocal.security import Identity
from citylocal.services.activity import ActivityLog
from citylocal.services.notifications import Notifier
from citylocal.utils import slugify, unique_slug


class RecordingActivityLog(ActivityLog):
    def __init__(self):
        self.events = []

    async def record(self, event_type, description, actor_id=None, metadata=None):
        self.events.append(
            {"type": event_type, "description": description, "actor_id": actor_id, "metadata": metadata or {}}
        )

    @property
    def types(self) -> list[str]:
        return [e["type"] for e in self.events]


class RecordingNotifier(Notifier):
    def __init__(self):
        super().__init__(admin_email="admin@citylocal.test", frontend_url="http://frontend.test")
        self.sent = []

    async def send(self, recipient, subject, body_html):
        self.sent.append({"to": recipient, "subject": subject, "html": body_html})
        return True


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def activity():
    return RecordingActivityLog()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

async def make_user(session, email="user@example.com", role=ROLE_USER, name="Test User", password_hash="x"):
    user = User(email=email, name=name, role=role, password_hash=password_hash)
    session.add(user)
    await session.commit()
    return user


async def make_category(session, name="Restaurants", **fields):
    category = Category(name=name, slug=slugify(name), icon=fields.pop("icon", "utensils"), **fields)
    session.add(category)
    await session.commit()
    return category


async def make_business(session, category, name="Sample Shop", **fields):
    values = {
        "description": f"{name} description",
        "address": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "phone": "555-0100",
        "is_active": True,
    }
    values.update(fields)
    business = Business(name=name, slug=unique_slug(name), category_id=category.id, **values)
    session.add(business)
    await session.commit()
    return business


def identity_of(user) -> Identity:
    return Identity(id=user.id, role=user.role)


@pytest_asyncio.fixture
async def category(session):
    return await make_category(session)


@pytest_asyncio.fixture
async def admin(session):
    return await make_user(session, email="admin@example.com", role=ROLE_ADMIN, name="Admin")
