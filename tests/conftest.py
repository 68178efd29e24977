import asyncio
import os
from datetime import date, time, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///./test.db')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

from medibook.models import (  # noqa: E402
    Appointment,
    Doctor,
    DoctorAvailability,
    NotificationEvent,
    Patient,
    User,
)

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TODAY = date(2030, 1, 1)


def next_monday(weeks_ahead: int = 2) -> date:
    d = date.today() + timedelta(weeks=weeks_ahead)
    return d + timedelta(days=(0 - d.weekday()) % 7)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def types_for(self, user_id: int) -> list[str]:
        return [e.type for e in self.events if e.user_id == user_id]


class FailingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    async def notify(self, event: NotificationEvent) -> None:
        self.calls += 1
        raise RuntimeError('notification backend is down')


@pytest.fixture
def session_maker(tmp_path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'medibook.db'}", poolclass=NullPool)

    async def create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def world(session_maker) -> dict:
    """Two patients, two doctors and Monday 09:00-12:00 availability for the first doctor."""

    async def seed() -> dict:
        async with session_maker() as session:
            users = [
                User(email='alice@example.com', full_name='Alice Patient', user_type='patient'),
                User(email='bob@example.com', full_name='Bob Patient', user_type='patient'),
                User(email='house@example.com', full_name='Gregory House', user_type='doctor'),
                User(email='grey@example.com', full_name='Meredith Grey', user_type='doctor'),
            ]
            session.add_all(users)
            await session.flush()

            alice = Patient(user_id=users[0].id, name='Alice Patient', date_of_birth=date(1990, 5, 17))
            bob = Patient(user_id=users[1].id, name='Bob Patient')
            house = Doctor(user_id=users[2].id, first_name='Gregory', last_name='House', specialty='Diagnostics')
            grey = Doctor(user_id=users[3].id, first_name='Meredith', last_name='Grey')
            session.add_all([alice, bob, house, grey])
            await session.flush()

            session.add(
                DoctorAvailability(doctor_id=house.id, day_of_week=1, start_time=time(9, 0), end_time=time(12, 0))
            )
            await session.commit()
            return {
                'alice': alice,
                'bob': bob,
                'house': house,
                'grey': grey,
                'alice_user': users[0],
                'bob_user': users[1],
                'house_user': users[2],
                'grey_user': users[3],
            }

    return asyncio.run(seed())


def add_appointment(session_maker, **fields) -> Appointment:
    async def insert() -> Appointment:
        async with session_maker() as session:
            appointment = Appointment(**fields)
            session.add(appointment)
            await session.commit()
            return appointment

    return asyncio.run(insert())


def fetch(session_maker, model, pk):
    async def load():
        async with session_maker() as session:
            return await session.get(model, pk)

    return asyncio.run(load())
