"""Exception hierarchy for Finantech."""

from typing import Any


class FinantechError(Exception):
    """Base exception for Finantech errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class DocumentValidationError(FinantechError):
    """A CPF or CNPJ failed its check-digit validation."""

    pass


class NotFoundError(FinantechError):
    """A referenced record does not exist."""

    pass


class ProxyError(FinantechError):
    """The AI proxy could not serve a request.

    ``status_code`` is the HTTP status the route should answer with.
    """

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message, details)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": str(self)}
        if self.details is not None:
            body["details"] = self.details
        return body


class ProxyClientError(FinantechError):
    """The AI proxy answered with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message, details)
        self.status_code = status_code
