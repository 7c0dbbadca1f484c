"""Error taxonomy for the admin endpoint.

Every error carries the HTTP status it maps to and a machine-readable
``reason`` so the admin UI can tell a rejected form apart from a failed
upstream write without parsing message text.
"""


class AdminError(Exception):
    status_code = 500
    reason = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.message, "reason": self.reason}


class ConfigurationError(AdminError):
    """A required environment value is missing. Nobody can be authenticated."""

    status_code = 500
    reason = "configuration"


class AuthorizationError(AdminError):
    status_code = 401
    reason = "authorization"


class ValidationError(AdminError):
    """Malformed JSON or a field failing its constraint. Raised before any remote call."""

    status_code = 400
    reason = "validation"


class UnknownActionError(ValidationError):
    reason = "unknown_action"

    def __init__(self, action: str):
        super().__init__(f"Unknown action: {action}")
        self.action = action


class _RemoteError(AdminError):
    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None, upstream_message: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_message = upstream_message

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.upstream_status is not None:
            data["upstream_status"] = self.upstream_status
        return data


class RemoteWriteError(_RemoteError):
    """The data API answered a write with a non-2xx status, or never answered."""

    reason = "remote_write"


class TableReplacementError(RemoteWriteError):
    """Standings were deleted but the new rows could not be inserted.

    The remote table is empty until the replacement is re-run.
    """

    reason = "table_emptied"

    @classmethod
    def from_insert_failure(cls, exc: RemoteWriteError) -> "TableReplacementError":
        return cls(
            f"Table rows deleted but reinsertion failed: {exc.message}",
            upstream_status=exc.upstream_status,
            upstream_message=exc.upstream_message,
        )


class RemoteUploadError(_RemoteError):
    reason = "remote_upload"
