# Entry point for a scheduled job sweeping uploads left behind by an interrupted request.
import logging

from app.core.cleanup import cleanup_stale_uploads

logger = logging.getLogger(__name__)


def handler(event, context):
    """Scheduled cleanup function to delete stale files in the upload directory."""
    logger.info("Cleanup cron job invoked.")
    removed = cleanup_stale_uploads()
    logger.info("Cleanup cron job finished, removed %d file(s).", removed)
    return {"status": "success", "removed": removed}


if __name__ == "__main__":
    cleanup_stale_uploads()
