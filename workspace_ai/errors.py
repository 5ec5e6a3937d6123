"""
Error taxonomy for workspace operations.

Every error raised on purpose by the package derives from WorkspaceError and
carries a short machine-readable ``code`` so callers can map it to a response.
"""


class WorkspaceError(Exception):
    """Base class for all workspace errors."""
    code = "error"

    def to_dict(self) -> dict:
        return {"success": False, "error": str(self), "code": self.code}


class AccessDenied(WorkspaceError):
    """A resolved path escapes the sandbox root."""
    code = "access_denied"


class NotFound(WorkspaceError):
    """A referenced path does not exist at execution time."""
    code = "not_found"


class InvalidArgument(WorkspaceError):
    """A required parameter is missing or malformed."""
    code = "invalid_argument"


class Unsupported(WorkspaceError):
    """The action name is not a canonical action."""
    code = "unsupported"


class InvalidModelResponse(WorkspaceError):
    """The model output could not be turned into a JSON object."""
    code = "invalid_model_response"


class ModelTransportError(WorkspaceError):
    """The model call itself failed (after the fallback attempt)."""
    code = "model_transport_error"


class ModelUnavailable(ModelTransportError):
    """No API key or client library configuration is available."""
    code = "model_unavailable"
