from typing import Dict, Optional


class KubbzError(Exception):
    """Base class for failures surfaced to API callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str = None):
        self.message = message or self.kind.replace("_", " ").capitalize()
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
        }


class ValidationError(KubbzError):
    kind = "validation_error"
    status_code = 400

    def __init__(self, fields: Dict[str, str], message: str = None):
        self.fields = dict(fields)
        if message is None:
            message = "Invalid fields: " + ", ".join(sorted(self.fields))
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class NotFound(KubbzError):
    kind = "not_found"
    status_code = 404


class Conflict(KubbzError):
    kind = "conflict"
    status_code = 409

    def __init__(self, message: str = None, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["fields"] = {self.field: self.message}
        return data


class AlreadyRegistered(Conflict):
    kind = "already_registered"


class RegistrationClosed(KubbzError):
    kind = "registration_closed"
    status_code = 409


class TournamentFull(KubbzError):
    kind = "tournament_full"
    status_code = 409


class NotRegistered(NotFound):
    kind = "not_registered"
    status_code = 404


class Unauthorized(KubbzError):
    kind = "unauthorized"
    status_code = 401


class Forbidden(KubbzError):
    kind = "forbidden"
    status_code = 403


class Unavailable(KubbzError):
    kind = "unavailable"
    status_code = 503
