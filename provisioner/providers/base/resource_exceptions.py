"""
Exceptions raised by resource reconcilers.
"""


class ResourceException(Exception):
    def __init__(self, message, resource_type=None, resource_id=None):
        super().__init__(message)
        self.message = message
        self.resource_type = resource_type
        self.resource_id = resource_id

    def __str__(self):
        if self.resource_type is None:
            return self.message
        return f"{self.resource_type}[{self.resource_id or '-'}]: {self.message}"


class ResourceValidationException(ResourceException):
    """Malformed local input, e.g. an identifier that can't be parsed."""


class ResourceNotFoundException(ResourceException):
    pass


class CreateFailedException(ResourceException):
    pass


class ReadFailedException(ResourceException):
    pass


class UpdateFailedException(ResourceException):
    pass


class DeleteFailedException(ResourceException):
    pass


class PropagationTimeoutException(ResourceException):
    """
    The remote write went through but it didn't become observable in time.
    """

    def __init__(self, message, resource_type=None, resource_id=None, last_error=None):
        super().__init__(message, resource_type, resource_id)
        self.last_error = last_error


class ShapeException(ResourceException):
    """A value couldn't be coerced between the local and remote shapes."""
