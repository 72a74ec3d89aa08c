"""Domain errors raised by services and rendered by the app-level handler."""

from typing import Optional


class DomainError(Exception):
    """
    Error with an explicit kind and an HTTP status hint.

    Services raise these unmodified; the route layer maps ``status_code``
    onto the response and renders ``{code, message}``.
    """

    def __init__(self, code: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}

    @classmethod
    def not_found(cls, resource: str, resource_id: Optional[str] = None) -> "DomainError":
        if resource_id:
            message = f"{resource} with id {resource_id} not found"
        else:
            message = f"{resource} not found"
        return cls("NOT_FOUND", message, 404)

    @classmethod
    def unauthorized(cls, message: str = "Authentication required") -> "DomainError":
        return cls("UNAUTHORIZED", message, 401)

    @classmethod
    def forbidden(cls, message: str = "Access forbidden") -> "DomainError":
        return cls("FORBIDDEN", message, 403)

    @classmethod
    def conflict(cls, message: str) -> "DomainError":
        return cls("CONFLICT", message, 409)

    @classmethod
    def validation(cls, message: str) -> "DomainError":
        return cls("VALIDATION_ERROR", message, 422)
