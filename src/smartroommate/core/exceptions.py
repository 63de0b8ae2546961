from fastapi import status


class DomainError(Exception):
    """
    Base class for errors that are reported to the caller.
    Every subclass carries the HTTP status it is rendered with.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication credentials"


class AccessDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied."


class InvalidRecipient(DomainError):
    default_message = "Invalid recipient."


class InsufficientMembers(DomainError):
    default_message = "Select at least one other person."


class EmptyBody(DomainError):
    default_message = "Message body is required."


class ProfileIncomplete(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Complete your profile to browse roommates."


class ValidationFailed(DomainError):
    default_message = "Missing required fields"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(DomainError):
    default_message = "Email already used"


class InvalidToken(DomainError):
    default_message = "Invalid or expired token."
