"""
Command-line trigger for one dispatch run.

    habitpush-dispatch                 # now
    habitpush-dispatch --at 2026-03-01T00:03:00Z

Prints the run report as JSON. Exits 1 when VAPID keys are not usable.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from habitpush.config import settings
from habitpush.core.vapid import VapidConfigError
from habitpush.database import SessionLocal
from habitpush.services.dispatch import run_dispatch

logger = logging.getLogger("habitpush.cli")


def _parse_instant(value: str) -> datetime:
    instant = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send every habit/briefing reminder due right now.")
    parser.add_argument(
        "--at",
        type=_parse_instant,
        default=None,
        help="evaluate as if it were this ISO-8601 instant (default: now, UTC if no offset)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db = SessionLocal()
    try:
        report = run_dispatch(db, now=args.at)
    except VapidConfigError as exc:
        logger.error("Dispatch aborted: %s", exc)
        return 1
    finally:
        db.close()

    print(json.dumps(report.as_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
