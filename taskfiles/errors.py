"""Error taxonomy for attached-file serving.

Each error carries the status class it is reported with, so the HTTP
layer and the CLI can translate them without inspecting messages.
"""


class FilesError(Exception):
    """Base class for all file serving errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(FilesError):
    """Missing or malformed request parameter, or wrong kind of path."""

    status_code = 400


class NotFoundError(FilesError):
    """No attachment matches, or a file attachment was addressed as a directory."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ContainmentError(FilesError):
    """Path could not be canonicalized or escapes its attached root."""

    status_code = 500


class FileAccessError(FilesError):
    """Operating system failure while opening, seeking or reading a file."""

    status_code = 500
