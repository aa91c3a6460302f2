"""
Apply schema.sql to the configured database.

Run once before starting the gateway:
    python -m eventboard.database.init_db
"""

import logging
import sys
from pathlib import Path

from eventboard.database.db_connection import close_db_pool, get_db, init_db_pool

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def init_db() -> None:
    """
    Create the users, events and event_attendees tables if they do not exist.

    Raises:
        psycopg2.Error: If the schema cannot be applied.
    """
    sql = SCHEMA_PATH.read_text(encoding="utf-8")

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql)

    logging.info(f"Schema applied from {SCHEMA_PATH.name}")


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

    try:
        init_db_pool()
        init_db()
    except Exception:
        logging.exception("Database initialisation FAILED")
        return 1
    finally:
        close_db_pool()

    logging.info("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
