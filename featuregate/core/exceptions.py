"""
Exception types.

ConfigurationError is raised inside the evaluation core and never escapes
evaluate(); the others surface through the HTTP API.
"""


class FeatureGateError(Exception):
    """Base class for all featuregate errors."""

    code: str = "featuregate_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(FeatureGateError):
    """A flag or segment definition cannot be evaluated as given."""

    code = "configuration_error"


class NotFoundError(FeatureGateError):
    """A requested flag or segment does not exist in the environment."""

    code = "not_found"

    def __init__(self, resource: str, key: str) -> None:
        super().__init__(f"{resource} '{key}' not found")
        self.resource = resource
        self.key = key
