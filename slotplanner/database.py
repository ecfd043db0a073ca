from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from slotplanner.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_slot_schema_checked = False


def ensure_slot_schema() -> None:
    global _slot_schema_checked

    if _slot_schema_checked:
        return

    with _schema_lock:
        if _slot_schema_checked:
            return

        inspector = inspect(engine)
        table_names = set(inspector.get_table_names())

        with engine.begin() as connection:
            if 'slots' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('slots')}
                if 'capacity_index' not in existing_columns:
                    connection.execute(text('ALTER TABLE slots ADD COLUMN capacity_index INTEGER'))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_slots_day_of_week ON slots(day_of_week)')
                )
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_slots_day_capacity '
                        'ON slots(day_of_week, capacity_index)'
                    )
                )

            if 'slot_exceptions' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_slot_exceptions_date ON slot_exceptions(exception_date)')
                )
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_slot_exceptions_slot_date '
                        'ON slot_exceptions(slot_id, exception_date)'
                    )
                )

            if 'one_time_slots' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_one_time_slots_date ON one_time_slots(slot_date)')
                )

        _slot_schema_checked = True
