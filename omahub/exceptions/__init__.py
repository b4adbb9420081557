"""Custom exceptions for the OmaHub application."""


class OmaHubError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['error'] = self.message
        return rv


class BusinessLogicError(OmaHubError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(OmaHubError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class AuthenticationError(OmaHubError):
    """Raised when no user can be resolved for the request."""
    def __init__(self, message="Authentication required - please log in again"):
        super().__init__(message, 401)


class UnauthorizedError(OmaHubError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 403)


class ConflictError(OmaHubError):
    """Raised when the request conflicts with the current state of a resource."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class EmptyBasketError(BusinessLogicError):
    """The user has nothing to submit."""
    def __init__(self, message="No baskets found"):
        super().__init__(message, status_code=400)


class ProfileNotFoundError(OmaHubError):
    """Customer contact details are required to place orders."""
    def __init__(self, message="Failed to fetch user profile"):
        super().__init__(message, 500)


class NoOrdersCreatedError(OmaHubError):
    """Every brand group of a submission failed."""
    def __init__(self, message="No valid orders could be created"):
        super().__init__(message, 500)


class SubmissionInProgressError(ConflictError):
    """Another request is already converting this basket into orders."""
    def __init__(self, message="Basket submission already in progress"):
        super().__init__(message)
