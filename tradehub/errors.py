"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    kind = "AppError"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    kind = "InvalidInput"

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class MissingParametersError(AppError):
    """Raised when a caller omits a required argument."""

    kind = "MissingParameters"

    def __init__(self, message="Missing required parameters"):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    kind = "NotFound"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UnauthorizedError(AppError):
    """Raised when a permission check fails."""

    kind = "Unauthorized"

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotYoursError(UnauthorizedError):
    """Raised when an invitation belongs to someone else."""

    kind = "NotYours"

    def __init__(self, message="This invitation is not for you"):
        """Initialize the error."""
        super().__init__(message)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    kind = "Duplicate"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class AlreadyMemberError(DuplicateResourceError):
    """Raised when the user already belongs to the group."""

    kind = "AlreadyMember"

    def __init__(self, message="User is already in group"):
        """Initialize the error."""
        super().__init__(message)


class AlreadyProcessedError(DuplicateResourceError):
    """Raised when an invitation or join request is no longer pending."""

    kind = "AlreadyProcessed"

    def __init__(self, message="Invitation already processed"):
        """Initialize the error."""
        super().__init__(message)


class DuplicateInviteError(DuplicateResourceError):
    """Raised when a pending invitation already exists for the pair."""

    kind = "DuplicateInvite"

    def __init__(self, message="Invitation already sent"):
        """Initialize the error."""
        super().__init__(message)


class DuplicateRequestError(DuplicateResourceError):
    """Raised when a pending join request already exists for the pair."""

    kind = "DuplicateRequest"

    def __init__(self, message="You already have a pending request for this group"):
        """Initialize the error."""
        super().__init__(message)


class NotMemberError(AppError):
    """Raised when the user is not part of the group."""

    kind = "NotMember"

    def __init__(self, message="Not a member"):
        """Initialize the error."""
        super().__init__(message, 409)


class GroupFullError(AppError):
    """Raised when a group is at capacity."""

    kind = "GroupFull"

    def __init__(self, message="Group is full"):
        """Initialize the error."""
        super().__init__(message, 409)


class ExpiredError(AppError):
    """Raised when an invitation is past its expiry."""

    kind = "Expired"

    def __init__(self, message="Invitation expired"):
        """Initialize the error."""
        super().__init__(message, 410)


class StoreFailureError(AppError):
    """Wraps an unexpected error raised by one of the data stores."""

    kind = "StoreFailure"

    def __init__(self, message="A database error occurred."):
        """Initialize the error."""
        super().__init__(message, 500)
