"""
FileKeep Server - Request Errors

Exceptions for malformed requests and for targets that are missing or
already taken.
"""

from .file_manager_error import FileManagerError


class UnknownCommandError(FileManagerError):
    code = 400
    default_message = "Unknown command"


class InvalidRequestError(FileManagerError):
    code = 400
    default_message = "Invalid request"


class AlreadyExistsError(FileManagerError):
    code = 409
    default_message = "File already exists"


class NotFoundError(FileManagerError):
    code = 404
    default_message = "File not found"


class PluginUnavailableError(FileManagerError):
    """No plugin is registered for the routed command."""
    code = 503
    default_message = "Plugin not available"


class RateLimitedError(FileManagerError):
    code = 429
    default_message = "Rate limit exceeded"
