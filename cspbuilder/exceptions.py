"""
Custom exceptions for the CSP builder.
"""


class CSPError(Exception):
    """Base exception for Content Security Policy errors."""

    pass


class HeadersAlreadySentError(CSPError):
    """Raised when a policy is mutated after response headers were committed."""

    def __init__(self, message="Headers have been sent already."):
        self.message = message
        super().__init__(self.message)


class InvalidArgumentError(CSPError, ValueError):
    """Raised when a scheme or hash algorithm argument is malformed."""

    pass


class ConfigurationError(CSPError, ValueError):
    """Raised when a policy configuration mapping fails validation."""

    def __init__(self, message="Invalid CSP configuration", original_exception=None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)
