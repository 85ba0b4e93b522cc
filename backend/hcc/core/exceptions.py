"""
Error taxonomy and safe exception factories.

SECURITY PRINCIPLE: Don't expose internal details to users.
Use generic error messages externally, detailed logging internally.

Every error leaves the API as ``{"message": str}`` with the status code of
the class below (see the handlers installed in ``hcc.main``).
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class ClinicError(HTTPException):
    """Base for every error the API raises on purpose."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal error occurred. Please try again later."

    def __init__(self, message: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(ClinicError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(Unauthenticated):
    default_message = "Invalid or expired token"


class Forbidden(ClinicError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyProcessed(Conflict):
    default_message = "Already processed"


class InsufficientStock(Conflict):
    default_message = "Insufficient stock"


class ServerError(ClinicError):
    pass


class BusinessError:
    """Factories that log the internal reason and hand back the safe error."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> NotFound:
        """
        404 for a referenced entity that does not exist.

        Example:
            if not slot:
                raise BusinessError.not_found("Slot")
        """
        if reason:
            logger.info(f"Not found: {resource} - {reason}")
        return NotFound(f"{resource} not found")

    @staticmethod
    def unauthorized(reason: str = "", message: str | None = None) -> Unauthenticated:
        """
        Generic 401 for authentication failures.

        SECURITY: Same response for wrong password, non-existent user, etc.
        """
        logger.warning(f"Unauthorized access attempt: {reason}")
        return Unauthenticated(message)

    @staticmethod
    def invalid_token(reason: str = "") -> InvalidToken:
        logger.warning(f"Token rejected: {reason}")
        return InvalidToken()

    @staticmethod
    def forbidden(reason: str = "", message: str | None = None) -> Forbidden:
        """403 for role or ownership mismatches."""
        logger.warning(f"Forbidden access: {reason}")
        return Forbidden(message)

    @staticmethod
    def bad_request(detail: str) -> ValidationError:
        """
        400 for input validation errors.

        OK to include specific details here since user caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return ValidationError(detail)

    @staticmethod
    def conflict(detail: str) -> Conflict:
        """409 for state conflicts, e.g. "Slot is already booked"."""
        logger.info(f"Conflict: {detail}")
        return Conflict(detail)

    @staticmethod
    def already_processed(detail: str) -> AlreadyProcessed:
        logger.info(f"Already processed: {detail}")
        return AlreadyProcessed(detail)

    @staticmethod
    def insufficient_stock(detail: str) -> InsufficientStock:
        logger.warning(f"Insufficient stock: {detail}")
        return InsufficientStock(detail)

    @staticmethod
    def server_error(original_error: Exception | None = None) -> ServerError:
        """
        Generic 500 - logs actual error internally, hides from user.

        SECURITY: Never expose stack traces, SQL errors, or internal paths to users.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)
        return ServerError()
