"""Print the expanded slot instances for one week as JSON.

Usage:
    python -m slotplanner.print_week [YYYY-MM-DD]

Without an argument the current Sunday-based week is printed.
"""
import sys
from datetime import date

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from slotplanner.database import SessionLocal
from slotplanner.routes.slot_routes import SlotInstanceResponse
from slotplanner.services.expansion import expand_week, week_start_for

_instances_adapter = TypeAdapter(list[SlotInstanceResponse])


def render_week(week_start: date, db) -> bytes:
    instances = [SlotInstanceResponse.model_validate(instance) for instance in expand_week(week_start, db)]
    return _instances_adapter.dump_json(instances, indent=2)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    try:
        week_start = date.fromisoformat(args[0]) if args else week_start_for(date.today())
    except ValueError:
        print(f"Invalid week start {args[0]!r}, expected YYYY-MM-DD.", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        rendered = render_week(week_start, db)
    except SQLAlchemyError as exc:
        print(
            f"Could not read slots ({exc.__class__.__name__}). "
            "Check DATABASE_URL and start the API once to create the schema.",
            file=sys.stderr,
        )
        sys.exit(1)
    finally:
        db.close()

    sys.stdout.buffer.write(rendered)
    sys.stdout.buffer.write(b"\n")


if __name__ == "__main__":
    main()
