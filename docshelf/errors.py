class DocShelfError(Exception):
    """Base error for every failure the library reports to a caller.

    Each subclass carries the HTTP status the server answers with, so the
    Flask layer needs a single handler for the whole family.
    """

    status = 500
    default_message = "Operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PathTraversal(DocShelfError):
    status = 403
    default_message = "Access denied"


class NotFound(DocShelfError):
    status = 404
    default_message = "Path not found"


class NotAFile(DocShelfError):
    status = 400
    default_message = "Path is not a file"


class AlreadyExists(DocShelfError):
    status = 409
    default_message = "Path already exists"


class Unauthorized(DocShelfError):
    status = 401
    default_message = "Invalid password"


class UnsupportedType(DocShelfError):
    status = 415
    default_message = "Unsupported file type"


class InvalidRequest(DocShelfError):
    status = 400
    default_message = "Invalid request"


class OperationFailed(DocShelfError):
    status = 500
