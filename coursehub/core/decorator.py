import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from coursehub.core.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    if getattr(error.orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(error.orig)


def db_exception(conflict_message: str = "Duplicate entry: already exists"):
    """
    Wrap a service method so that storage failures leave the session clean.

    The wrapped method must belong to an object with a ``db`` session.
    Unique violations that slip past the service's own pre-checks (two
    concurrent writers racing for the same slot) become ``ConflictError``
    with ``conflict_message``; foreign key and check violations become a
    ``ConflictError`` coded ``CONSTRAINT_VIOLATION``. Anything else from
    SQLAlchemy becomes a generic ``StorageError``.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except IntegrityError as e:
                self.db.rollback()
                logger.warning(f"{func.__qualname__}: integrity violation: {e.orig}")
                if is_unique_violation(e):
                    raise ConflictError(conflict_message)
                raise ConflictError(
                    "Data violates a storage constraint", code="CONSTRAINT_VIOLATION"
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"{func.__qualname__}: database error: {e}")
                raise StorageError("Database error occurred")

        return wrapper

    return decorator
