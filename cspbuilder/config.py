"""Declarative Content Security Policy configuration.

This module provides auto-quoting CSP configuration with support for:
- Automatic quoting of CSP keywords ('self', 'unsafe-inline', etc.)
- URL and domain handling (no quotes needed)
- Nonce injection for inline scripts/styles
- Report-only mode for testing
- Loading from wire-named mappings (e.g. parsed JSON/YAML settings)
- Pre-configured security presets
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .directives import Directive, lookup_selector
from .exceptions import ConfigurationError
from .keywords import NONE
from .policy import ContentSecurityPolicy, HeadersSentCheck

logger = logging.getLogger(__name__)

Sources = Optional[Union[List[str], Callable[[], List[str]]]]


@dataclass
class CSPConfig:
    """Content Security Policy configuration with auto-quoting.

    CSP keywords (self, unsafe-inline, etc.) are automatically quoted.
    URLs and domains don't need quotes - just pass them as-is.

    Examples:
        # Simple protection
        CSPConfig(default_src=["self"])

        # CDN support (no manual quoting!)
        CSPConfig(
            script_src=["self", "https://cdn.jsdelivr.net"],
            style_src=["self", "unsafe-inline"]  # Keywords auto-quoted
        )

        # Block everything except self
        CSPConfig(
            default_src=["self"],
            object_src=["none"]  # Plugins blocked
        )

    Note:
        Keywords like 'self', 'unsafe-inline' are auto-quoted.
        URLs like https://cdn.com need no quotes.
        Already-quoted values are preserved.
        A directive configured as ["none"] renders as 'none'.
    """

    # CSP keywords that need single quotes
    KEYWORDS = {
        'self', 'unsafe-inline', 'unsafe-eval', 'none',
        'strict-dynamic', 'unsafe-hashes', 'report-sample',
        'unsafe-allow-redirects', 'wasm-unsafe-eval'
    }

    # Fetch directives
    child_src: Sources = None
    connect_src: Sources = None
    default_src: Sources = None
    font_src: Sources = None
    frame_src: Sources = None
    img_src: Sources = None
    manifest_src: Sources = None
    media_src: Sources = None
    object_src: Sources = None
    script_src: Sources = None
    style_src: Sources = None

    # Document directives
    base_uri: Sources = None
    plugin_types: Sources = None
    sandbox: Sources = None

    # Navigation directives
    form_action: Sources = None
    frame_ancestors: Sources = None
    navigate_to: Sources = None

    # Other directives
    block_all_mixed_content: Sources = None
    upgrade_insecure_requests: Sources = None

    # Special options
    nonce: bool = False  # Add the policy nonce to script-src and style-src
    report_only: bool = False  # Use Content-Security-Policy-Report-Only
    header_name: Optional[str] = None

    @staticmethod
    def _quote_source(source: str) -> str:
        """Auto-quote CSP sources based on type.

        Args:
            source: Raw source value from user

        Returns:
            Properly quoted CSP source

        Examples:
            >>> CSPConfig._quote_source("self")
            "'self'"
            >>> CSPConfig._quote_source("https://cdn.com")
            "https://cdn.com"
            >>> CSPConfig._quote_source("'self'")  # Already quoted
            "'self'"
        """
        # Already quoted - leave it
        if len(source) > 1 and source.startswith("'") and source.endswith("'"):
            return source

        # Nonce/hash format - quote it
        if source.startswith("nonce-") or source.startswith(("sha256-", "sha384-", "sha512-")):
            return f"'{source}'"

        # Known keyword - quote it
        if source.lower() in CSPConfig.KEYWORDS:
            return f"'{source.lower()}'"

        # URL, scheme, or domain - no quotes
        return source

    @staticmethod
    def _resolve_sources(sources: Union[List[str], Callable[[], List[str]]]) -> List[str]:
        """Resolve sources (may be callable)."""
        if callable(sources):
            return sources()
        return sources

    def configured_directives(self) -> Dict[Directive, List[str]]:
        """Map each configured directive to its quoted sources, in field order."""
        configured = {}
        for f in fields(self):
            directive = lookup_selector(f.name.replace("_", "-"))
            if directive is None:
                continue
            sources = getattr(self, f.name)
            if sources is None:
                continue
            configured[directive] = [self._quote_source(s) for s in self._resolve_sources(sources)]
        return configured

    def build_policy(
        self,
        headers_sent: Optional[HeadersSentCheck] = None,
        nonce_value: Optional[str] = None,
    ) -> ContentSecurityPolicy:
        """Build a fresh policy for one response.

        Args:
            headers_sent: Optional "headers committed" check for the policy
            nonce_value: Nonce managed elsewhere. It becomes the policy's
                nonce; one is generated when omitted

        Returns:
            A new ContentSecurityPolicy
        """
        policy = ContentSecurityPolicy(
            headers_sent=headers_sent,
            header_name=self.header_name,
            report_only=self.report_only,
            nonce=nonce_value,
        )
        for directive, sources in self.configured_directives().items():
            if NONE in sources:
                policy.disallow_directive(directive)
            elif sources:
                policy.allow_hosts(directive, sources)

        if self.nonce:
            for directive in (Directive.SCRIPT_SRC, Directive.STYLE_SRC):
                state = policy.get_directive(directive)
                if state is not None and not state.is_none:
                    policy.allow_nonce(directive)
        return policy

    def build_header(self, nonce_value: Optional[str] = None) -> str:
        """Build CSP header value.

        Args:
            nonce_value: Optional nonce for inline scripts/styles

        Returns:
            Complete CSP header value
        """
        return self.build_policy(nonce_value=nonce_value).render()

    def get_header_name(self) -> str:
        """Get appropriate header name."""
        return ContentSecurityPolicy(report_only=self.report_only, header_name=self.header_name).header_name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CSPConfig":
        """Create a configuration from a wire-named mapping.

        Example:
            CSPConfig.from_dict({
                "directives": {"default-src": ["self"], "img-src": ["self", "data:"]},
                "nonce": True,
            })

        Raises:
            ConfigurationError: If the mapping does not validate
        """
        try:
            document = PolicyDocument.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Rejected CSP configuration: {e}")
            raise ConfigurationError(f"Invalid CSP configuration: {e.error_count()} error(s)", e) from e

        kwargs: Dict[str, Any] = {
            name.replace("-", "_"): list(sources)
            for name, sources in document.directives.items()
        }
        return cls(
            nonce=document.nonce,
            report_only=document.report_only,
            header_name=document.header_name,
            **kwargs,
        )


class PolicyDocument(BaseModel):
    """Validated shape of a mapping accepted by ``CSPConfig.from_dict``."""

    model_config = ConfigDict(extra="forbid")

    directives: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Directive wire name (e.g. 'script-src') to source expressions"
    )
    nonce: bool = Field(False, description="Add the policy nonce to script-src and style-src")
    report_only: bool = Field(False, description="Use the report-only header")
    header_name: Optional[str] = Field(None, description="Explicit header field name")

    @field_validator("directives")
    @classmethod
    def _known_directives(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        unknown = [name for name in value if lookup_selector(name) is None]
        if unknown:
            raise ValueError(f"Unknown CSP directive(s): {', '.join(sorted(unknown))}")
        return value


class CSPPreset:
    """Pre-configured CSP security presets."""

    # Strict security - blocks most external resources
    STRICT = CSPConfig(
        default_src=["self"],
        object_src=["none"],
        base_uri=["self"],
        form_action=["self"]
    )

    # Basic protection - allows self only
    BASIC = CSPConfig(
        default_src=["self"]
    )

    # Relaxed - allows inline styles (common in many apps)
    RELAXED = CSPConfig(
        default_src=["self"],
        style_src=["self", "unsafe-inline"],
        img_src=["self", "data:", "https:"]
    )

    # Development - very permissive, report only
    DEVELOPMENT = CSPConfig(
        default_src=["self"],
        script_src=["self", "unsafe-inline", "unsafe-eval"],
        style_src=["self", "unsafe-inline"],
        report_only=True
    )
