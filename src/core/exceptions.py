"""Custom exception classes for the Classroom API.

This module defines application-specific exceptions following Google Python
Style Guide. Every exception carries the HTTP status code the API layer
reports it with and a human-readable default message.
"""

from typing import Optional


class ClassroomError(Exception):
    """Base exception for all Classroom API errors."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        """Initialize the exception.

        Args:
            message: Optional message overriding the default one.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ClassroomError):
    """Raised when a request carries no valid identity."""

    status_code = 401
    default_message = "Not authenticated"


class Forbidden(ClassroomError):
    """Raised when the caller lacks authorization for the action."""

    status_code = 403
    default_message = "You do not have permission to perform this action"


class InvalidInput(ClassroomError):
    """Raised when request data is malformed."""

    status_code = 400
    default_message = "Invalid input"


class NotFound(ClassroomError):
    """Raised when a requested entity does not exist."""

    status_code = 404
    default_message = "Not found"


class GroupNotFound(NotFound):
    """Raised when a requested group cannot be found."""

    def __init__(self, group_id: str):
        """Initialize the exception.

        Args:
            group_id: The ID of the group that was not found.
        """
        self.group_id = group_id
        super().__init__("Group not found")


class CodeNotFound(NotFound):
    """Raised when a code matches neither a join code nor a group code."""

    default_message = "Code not found or invalid"


class UserNotFound(NotFound):
    """Raised when a requested user cannot be found."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User with id '{user_id}' not found.")


class StateConflict(ClassroomError):
    """Raised when the current state of an entity forbids the action."""

    status_code = 400
    default_message = "The request conflicts with the current state"


class CodeDeactivated(StateConflict):
    """Raised when a join code was deactivated by its teacher."""

    default_message = "This join code has been deactivated by the teacher"


class UsageLimitReached(StateConflict):
    """Raised when a join code has no uses left."""

    default_message = "This join code has reached its usage limit"


class CodeExpired(StateConflict):
    """Raised when a join code is past its expiry."""

    default_message = "This join code has expired"


class AlreadyMember(StateConflict):
    """Raised when the student is already enrolled in the class."""

    default_message = "You are already a member of this class"


class DuplicateGroupCode(StateConflict):
    """Raised when a legacy group code is already taken as a group or join code."""

    status_code = 409
    default_message = "This code already exists. Please generate a new one."


class UserAlreadyExists(StateConflict):
    """Raised when trying to create a user that already exists."""

    status_code = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User '{email}' already exists")


class GenerationExhausted(ClassroomError):
    """Raised when no unique code could be drawn within the retry budget.

    The condition is rare and transient: the caller may retry the whole
    request later.
    """

    status_code = 500
    default_message = "Failed to generate unique code. Please try again."
