import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from slotplanner.database import Base  # noqa: E402
from slotplanner.models.one_time_slot import OneTimeSlot  # noqa: E402
from slotplanner.models.recurring_slot import RecurringSlot  # noqa: E402
from slotplanner.models.slot_exception import SlotException  # noqa: E402

SLOT_TABLES = [RecurringSlot.__table__, SlotException.__table__, OneTimeSlot.__table__]


@pytest.fixture
def slot_db():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=SLOT_TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(SLOT_TABLES)))
        engine.dispose()


@pytest.fixture
def racing_sessions(tmp_path):
    engine = create_engine(f'sqlite:///{tmp_path / "slots.db"}')
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=SLOT_TABLES)

    writer = session_factory()
    rival = session_factory()
    try:
        yield writer, rival
    finally:
        writer.close()
        rival.close()
        engine.dispose()
