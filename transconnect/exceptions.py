"""Domain errors raised by repositories and services.

Routers never build ``HTTPException`` for these; ``main`` maps them to
responses and the websocket handler turns them into ``error`` frames.
"""


class ChatError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    status_code = 400


class Unauthorized(ChatError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(ChatError):
    status_code = 403


class NotFound(ChatError):
    status_code = 404


class ConflictError(ChatError):
    """Unique-constraint collision. Resolved internally, not meant for clients."""

    status_code = 409


class TransientIOError(ChatError):
    status_code = 503
