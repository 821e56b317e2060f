"""Exception types raised during startup and serving."""


class IamyouareError(Exception):
    """Base class for all iamyouare errors."""


class ConfigError(IamyouareError):
    """Raised when the selected protocol modes conflict."""


class IdentityError(IamyouareError):
    """Raised when the local hostname cannot be determined."""


class ResponderError(IamyouareError):
    """Raised when a responder cannot bind or its serve loop fails."""
