"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``main.py`` turns them into the JSON envelope
``{"success": false, "message": ...}`` with the matching status code.
"""

import traceback
from functools import wraps

from fastapi import status

from logging_config import logger


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidOperation(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed"


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email already in use"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Admin access required"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Unexpected(AppError):
    pass


def unexpected_errors(message: str):
    """Turn any non-AppError failure inside an operation into ``Unexpected(message)``.

    The original exception and traceback are logged server-side only.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                logger.error(f"{message}: {str(e)}")
                logger.error(traceback.format_exc())
                raise Unexpected(message) from e
        return wrapper
    return decorator
