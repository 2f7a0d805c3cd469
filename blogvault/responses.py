"""Response envelopes returned by the service layer"""

import logging
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from blogvault.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class ApiResponse:
    """HTTP status plus the JSON envelope a transport layer would send.

    ``body`` always carries ``success`` and ``message``; ``data``, ``error``,
    ``details`` and the pagination keys appear only when set.
    """

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))


def success(
    message: str,
    data: Any = None,
    status_code: int = 200,
    **extra: Any,
) -> ApiResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    if data is not None:
        body["data"] = data
    return ApiResponse(status_code, body)


def failure(
    message: str,
    status_code: int = 400,
    error: str | None = None,
    details: list[dict[str, Any]] | None = None,
) -> ApiResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    if details is not None:
        body["details"] = details
    return ApiResponse(status_code, body)


async def respond(
    operation: Callable[[], Awaitable[ApiResponse]],
    failure_message: str,
    *,
    expose_traceback: bool = False,
) -> ApiResponse:
    """Run one service operation and map blogvault errors to envelopes.

    This is the outermost boundary: anything unexpected is logged and
    becomes a 500 instead of propagating.
    """
    try:
        return await operation()
    except ValidationError as exc:
        logger.warning("Validation failed: %s", exc.details)
        return failure("Invalid data", 400, error=exc.message, details=exc.details)
    except NotFoundError as exc:
        if exc.summary:
            return failure(exc.summary, 404, error=exc.message)
        return failure(exc.message, 404)
    except ConflictError as exc:
        return failure(exc.message, 409)
    except PersistenceError as exc:
        return failure(failure_message, 500, error=exc.message)
    except Exception:
        logger.exception("Unhandled error: %s", failure_message)
        error = traceback.format_exc() if expose_traceback else None
        return failure("Internal server error", 500, error=error)
