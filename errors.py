from typing import Optional


class AutoDeployError(RuntimeError):
    """Base class for every failure surfaced to the log panel."""


class CredentialInvalidError(AutoDeployError):
    pass


class UpstreamUnreachableError(AutoDeployError):
    pass


class UpstreamRejectedError(AutoDeployError):
    """The upstream answered, but not with success. ``str(err)`` carries its message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationParseError(AutoDeployError):
    pass


class FileUploadError(AutoDeployError):

    def __init__(self, path: str, status_code: Optional[int] = None):
        super().__init__(f"Failed to upload {path}")
        self.path = path
        self.status_code = status_code


class ContentLookupError(AutoDeployError):
    """Existence check failed for a reason other than "not found"."""


class WorkflowBusyError(AutoDeployError):
    pass
