"""
Build and parse Content-Security-Policy header values.

Directives are addressed with combinable selector bits, each directive holds
an ordered set of allowed source expressions (or an explicit 'none'), and the
whole policy renders to and parses from the single-line header format,
including nonce and hash sources.
"""

from .config import CSPConfig, CSPPreset
from .directives import (
    ALL_DIRECTIVES,
    DOCUMENT_DIRECTIVES,
    FETCH_DIRECTIVES,
    NAVIGATION_DIRECTIVES,
    OTHER_DIRECTIVES,
    Directive,
    all_directives,
    expand,
    lookup_name,
    lookup_selector,
)
from .exceptions import (
    ConfigurationError,
    CSPError,
    HeadersAlreadySentError,
    InvalidArgumentError,
)
from .models import DirectiveMode, DirectiveState, ResponseHeaders
from .policy import (
    DEFAULT_HEADER_NAME,
    REPORT_ONLY_HEADER_NAME,
    ContentSecurityPolicy,
    create_policy,
    default_policy,
    reset_default_policy,
)
from .template_helpers import render

__version__ = "0.1.0"
__author__ = "cspbuilder Contributors"
__license__ = "MIT"

__all__ = [
    "ContentSecurityPolicy",
    "create_policy",
    "default_policy",
    "reset_default_policy",
    "DEFAULT_HEADER_NAME",
    "REPORT_ONLY_HEADER_NAME",
    "Directive",
    "FETCH_DIRECTIVES",
    "DOCUMENT_DIRECTIVES",
    "NAVIGATION_DIRECTIVES",
    "OTHER_DIRECTIVES",
    "ALL_DIRECTIVES",
    "all_directives",
    "expand",
    "lookup_name",
    "lookup_selector",
    "DirectiveMode",
    "DirectiveState",
    "ResponseHeaders",
    "CSPConfig",
    "CSPPreset",
    "CSPError",
    "HeadersAlreadySentError",
    "InvalidArgumentError",
    "ConfigurationError",
    "render",
]
