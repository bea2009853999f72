import logging

from convene.db import initialize_db
from convene.logging import configure_logging
from convene.settings import settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Configure logging and bring the database schema up to date."""
    configure_logging()
    initialize_db()
    logger.info(
        "convene ready: membership_strictness=%s reinvite_after_decline=%s changes_when_canceled=%s",
        settings.membership_strictness,
        settings.allow_reinvite_after_decline,
        settings.allow_changes_when_canceled,
    )


if __name__ == "__main__":
    main()
