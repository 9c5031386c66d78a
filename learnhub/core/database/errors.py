"""Translation of Cassandra driver failures into domain errors."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from learnhub.core.exceptions import StorageFailureError


logger = structlog.get_logger(__name__)

CASSANDRA_ERRORS: tuple[type[Exception], ...] = (
    DriverException,
    RequestExecutionException,
    NoHostAvailable,
)


@contextmanager
def storage_guard(operation: str, **fields: Any) -> Iterator[None]:
    """Re-raise driver errors raised inside the block as StorageFailureError.

    Example:
        with storage_guard("enroll", course_id=course_id):
            await session.aexecute(stmt, params)
    """
    try:
        yield
    except CASSANDRA_ERRORS as e:
        logger.error(
            "storage_operation_failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **fields,
        )
        raise StorageFailureError() from e
