import logging
import pathlib
import time

from app.core.config import settings

logger = logging.getLogger(__name__)


def remove_artifact(path: pathlib.Path | str | None) -> bool:
    """Delete a transient upload. Returns True only if a file was removed."""
    if path is None:
        return False
    item = pathlib.Path(path)
    try:
        item.unlink()
        logger.info(f"Removed transient upload: {item}")
        return True
    except FileNotFoundError:
        logger.debug(f"Transient upload already gone: {item}")
        return False
    except OSError as e:
        logger.error(f"Error removing transient upload {item}: {e}")
        return False


def cleanup_stale_uploads(upload_dir: pathlib.Path | str | None = None) -> int:
    """Remove uploads older than cleanup_ttl left behind by an interrupted process."""
    directory = pathlib.Path(upload_dir or settings.upload_dir)
    if not directory.is_dir():
        return 0
    removed = 0
    for item in directory.glob("*"):
        try:
            if not item.is_file():
                continue
            if time.time() - item.stat().st_mtime > settings.cleanup_ttl:
                logger.info(f"Attempting to remove stale upload: {item}")
                if remove_artifact(item):
                    removed += 1
        except FileNotFoundError:
            logger.warning(f"Item not found during cleanup (possibly already deleted): {item}")
        except OSError as e:
            logger.error(f"Error inspecting item {item}: {e}")
    return removed
