from __future__ import annotations

from typing import Any

CONNECTION_ERROR_MESSAGE = "Erro de conexão. Verifique sua internet."


class ApiError(Exception):
    """Failure talking to the remote API.

    ``status`` is 0 when no HTTP response was obtained at all.
    """

    def __init__(self, message: str, status: int = 0, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    @property
    def is_connectivity(self) -> bool:
        return self.status == 0


class LoginError(ValueError):
    pass


class AccessDeniedError(Exception):
    pass


class FormValidationError(ValueError):
    pass


class LoginPayloadError(LoginError):
    """The login response did not carry a user or a token."""
