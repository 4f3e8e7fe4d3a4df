"""Error types raised by the Pod Node Environment plugin."""


class AdmissionError(Exception):
    """Base class for all plugin errors."""


class Forbidden(AdmissionError):
    """The request is rejected and the user is told why."""

    code = 403
    reason = "Forbidden"

    def __init__(self, resource: str, name: str, cause):
        self.resource = resource
        self.name = name
        self.cause = cause
        super().__init__(f'{resource} "{name}" is forbidden: {cause}')


class NamespaceNotFound(AdmissionError):
    """The namespace could not be located in the namespace cache."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        message = f'namespace "{name}" not found'
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SelectorParseError(AdmissionError, ValueError):
    """A node selector string is not a valid equality selector."""


class SelectorResolutionError(AdmissionError):
    """The effective node selector of a namespace could not be derived."""


class ConfigurationError(AdmissionError):
    """A required collaborator was never injected."""
