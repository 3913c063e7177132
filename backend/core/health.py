import logging

from django.db import DatabaseError, connections

logger = logging.getLogger(__name__)


def check_database(using: str = "default") -> dict:
    """Round-trip `SELECT 1` against the given alias."""
    try:
        with connections[using].cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
        return {"ok": True}
    except DatabaseError as e:
        logger.warning("Health check: database %s unreachable: %s", using, e)
        return {"ok": False, "error": str(e)}
