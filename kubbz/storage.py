import functools
import logging
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from .models import db
from shared.errors import Unavailable

logger = logging.getLogger(__name__)


@contextmanager
def atomic(operation: str):
    """Run a block as one unit of work: commit on success, roll back on any error.

    Storage aborts (lost connection, deadlock, serialization failure) are
    reported as ``Unavailable`` and never retried here.
    """
    try:
        yield db.session
        db.session.commit()
    except OperationalError as e:
        db.session.rollback()
        logger.error("Storage failure during %s: %s", operation, e)
        raise Unavailable(f"Storage unavailable during {operation}, nothing was changed") from e
    except Exception:
        db.session.rollback()
        raise


def retry_read_once(func):
    """Retry an idempotent read a single time after a storage abort."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            db.session.rollback()
            logger.warning("Transient storage failure in %s, retrying: %s", func.__name__, e)
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            db.session.rollback()
            logger.error("Storage failure in %s after retry: %s", func.__name__, e)
            raise Unavailable("Storage unavailable, please retry later") from e
    return wrapper
