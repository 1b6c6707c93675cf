import logging

logger = logging.getLogger(__name__)


async def safe_commit(session, operation: str = "commit"):
    """Commit the session, rolling back before re-raising on any failure.

    The commit error is what propagates; a failed rollback is only logged.
    """
    try:
        await session.commit()
    except Exception as e:
        logger.error(f"DB {operation} failed: {e}")
        try:
            await session.rollback()
        except Exception as rollback_error:
            logger.error(f"DB rollback after {operation} failed: {rollback_error}")
        raise
