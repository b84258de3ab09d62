"""
main.py
-------
Entry point for the messaging persistence layer.

Responsibilities:
    - Initialize the database connection pool.
    - Ensure the schema exists.
    - Close the pool again.

The HTTP layer imports `db.connection.get_pool()` and builds its own
sessions; this script only prepares the database.
"""

import sys

from db.connection import close_pool, get_pool
from db.init_db import SchemaInitError, ensure_tables_created
from utils.logger import configure, get_logger

logger = get_logger(__name__)


def main() -> int:
    configure()
    pool = get_pool()
    try:
        ensure_tables_created(pool)
    except SchemaInitError as e:
        logger.error(f"Database bootstrap failed: {e}")
        return 1
    finally:
        close_pool()
    logger.info("Database ready.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
