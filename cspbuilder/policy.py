"""Content Security Policy builder and header codec.

``ContentSecurityPolicy`` holds, per directive, either nothing (unrestricted),
an explicit ``'none'``, or an ordered set of allowed source expressions. It is
addressed by selector masks from :mod:`cspbuilder.directives`:

    policy = create_policy()
    policy.allow_self(Directive.SCRIPT_SRC | Directive.STYLE_SRC)
    policy.allow_hosts(Directive.SCRIPT_SRC, ["https://cdn.example.com"])
    policy.render()
    # "script-src 'self' https://cdn.example.com; style-src 'self'"

One instance belongs to one response. Instances are not synchronized.
"""

import base64
import hashlib
import logging
import random
import re
import secrets
from typing import Callable, Dict, Iterable, List, Optional, Union

from .bundles import SITE_BUNDLES
from .directives import Directive, Selector, expand, is_single, lookup_selector
from .exceptions import HeadersAlreadySentError, InvalidArgumentError
from .keywords import NONE, SELF, STRICT_DYNAMIC, UNSAFE_EVAL, UNSAFE_HASHES, UNSAFE_INLINE
from .models import DirectiveState

# Set up logger for this module
logger = logging.getLogger(__name__)

DEFAULT_HEADER_NAME = "Content-Security-Policy"
REPORT_ONLY_HEADER_NAME = "Content-Security-Policy-Report-Only"

HASH_ALGORITHMS = ("sha256", "sha384", "sha512")
NONCE_BYTES = 16

_SCHEME_PATTERN = re.compile(r"[a-z][a-z0-9]+:")
_WHITESPACE = re.compile(r"\s+")

HeadersSentCheck = Callable[[], bool]
HeaderSink = Callable[[str, str], None]


def create_nonce() -> str:
    """Create a base64 encoded nonce from 16 random bytes.

    Uses the operating system's cryptographic source. When the platform has
    none, falls back to the ``random`` module, which is predictable and only
    kept so that pages still render.
    """
    try:
        raw = secrets.token_bytes(NONCE_BYTES)
    except NotImplementedError:
        logger.warning("No cryptographic random source available; CSP nonce is predictable")
        raw = random.getrandbits(NONCE_BYTES * 8).to_bytes(NONCE_BYTES, "big")
    return base64.b64encode(raw).decode("ascii")


def hash_source(source: Union[str, bytes], algorithm: str = "sha256") -> str:
    """Build a hash source expression such as ``'sha256-<base64 digest>'``.

    The digest covers the exact bytes given; ``str`` input is UTF-8 encoded
    without any whitespace normalization.

    Raises:
        InvalidArgumentError: If the algorithm is not one CSP accepts
    """
    if algorithm not in HASH_ALGORITHMS:
        raise InvalidArgumentError(
            f"Unsupported hash algorithm: `{algorithm}`. Expected one of {', '.join(HASH_ALGORITHMS)}."
        )
    data = source.encode("utf-8") if isinstance(source, str) else source
    digest = base64.b64encode(hashlib.new(algorithm, data).digest()).decode("ascii")
    return f"'{algorithm}-{digest}'"


def check_scheme(scheme: str) -> str:
    """Return the scheme if it looks like ``https:``, ``data:`` etc.

    Raises:
        InvalidArgumentError: If the value is not a valid scheme source
    """
    if not isinstance(scheme, str) or not _SCHEME_PATTERN.fullmatch(scheme):
        raise InvalidArgumentError(f"Provided scheme value is not valid scheme: `{scheme}`.")
    return scheme


class ContentSecurityPolicy:
    """Mutable Content Security Policy for a single response.

    Args:
        headers_sent: Callable telling whether response headers are already
            committed. Every mutating call consults it and raises
            ``HeadersAlreadySentError`` when it returns True.
        header_name: Header field name. Defaults to ``Content-Security-Policy``.
        report_only: Use ``Content-Security-Policy-Report-Only`` when no
            explicit header name is given.
        nonce: Nonce value to use instead of a generated one, e.g. when the
            application already issued it to its templates.
    """

    def __init__(
        self,
        headers_sent: Optional[HeadersSentCheck] = None,
        header_name: Optional[str] = None,
        report_only: bool = False,
        nonce: Optional[str] = None,
    ):
        if header_name is None:
            header_name = REPORT_ONLY_HEADER_NAME if report_only else DEFAULT_HEADER_NAME
        self.header_name = header_name
        self._headers_sent = headers_sent
        self._directives: Dict[Directive, DirectiveState] = {}
        self._nonce: Optional[str] = nonce or None
        self._last_parsed_header: Optional[str] = None

    # Internal state helpers

    def _check_headers_sent(self) -> None:
        if self._headers_sent is not None and self._headers_sent():
            logger.warning(f"Refusing to modify {self.header_name}: headers have been sent already")
            raise HeadersAlreadySentError()

    def _allow(self, source_flags: Selector, token: str) -> None:
        for directive in expand(source_flags):
            state = self._directives.get(directive)
            if state is None:
                self._directives[directive] = DirectiveState.allow(token)
            else:
                state.add(token)

    def _disallow(self, source_flags: Selector, token: str) -> None:
        for directive in expand(source_flags):
            state = self._directives.get(directive)
            if state is None or state.is_none:
                continue
            state.discard(token)
            if not state.sources:
                del self._directives[directive]

    def _contains(self, directive: Directive, token: str) -> bool:
        state = self._directives.get(directive)
        return state is not None and token in state

    # Token primitives

    def allow_token(self, source_flags: Selector, token: str) -> "ContentSecurityPolicy":
        """Add a source expression to every selected directive."""
        self._check_headers_sent()
        self._allow(source_flags, token)
        return self

    def disallow_token(self, source_flags: Selector, token: str) -> "ContentSecurityPolicy":
        """Remove a source expression from every selected directive.

        A directive left without sources becomes unrestricted again (it is
        dropped from the header), never ``'none'``.
        """
        self._check_headers_sent()
        self._disallow(source_flags, token)
        return self

    def is_allowed(self, source_flags: Selector, token: str, match_all: bool = True) -> bool:
        """Check whether selected directive(s) allow a source expression.

        Args:
            source_flags: Directive selector mask
            token: Source expression to look for
            match_all: For masks selecting several directives, require every
                directive to allow the token (AND) instead of any (OR)

        Returns:
            False when the mask selects no known directive
        """
        selected = expand(source_flags)
        if not selected:
            return False
        if is_single(source_flags):
            return self._contains(selected[0], token)
        results = (self._contains(directive, token) for directive in selected)
        return all(results) if match_all else any(results)

    def disallow_directive(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Set every selected directive to ``'none'``, dropping allowed sources."""
        self._check_headers_sent()
        for directive in expand(source_flags):
            self._directives[directive] = DirectiveState.none()
        return self

    # Hosts and schemes

    def allow_hosts(self, source_flags: Selector, hosts: Iterable[str]) -> "ContentSecurityPolicy":
        """Allow hosts or URLs, e.g. ``*.example.com`` or ``https://cdn.example.com/js/``.

        Values are not validated.
        """
        self._check_headers_sent()
        for host in hosts:
            self._allow(source_flags, host)
        return self

    def disallow_hosts(self, source_flags: Selector, hosts: Iterable[str]) -> "ContentSecurityPolicy":
        self._check_headers_sent()
        for host in hosts:
            self._disallow(source_flags, host)
        return self

    def is_host_allowed(self, source_flags: Selector, host: str, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, host, match_all)

    def allow_scheme(self, source_flags: Selector, scheme: str = "https:") -> "ContentSecurityPolicy":
        """Allow every resource served over a scheme such as ``https:`` or ``data:``.

        Raises:
            HeadersAlreadySentError: If headers are committed
            InvalidArgumentError: If the scheme does not match ``[a-z][a-z0-9]+:``
        """
        self._check_headers_sent()
        self._allow(source_flags, check_scheme(scheme))
        return self

    def disallow_scheme(self, source_flags: Selector, scheme: str = "https:") -> "ContentSecurityPolicy":
        self._check_headers_sent()
        self._disallow(source_flags, check_scheme(scheme))
        return self

    def is_scheme_allowed(self, source_flags: Selector, scheme: str = "https:", match_all: bool = True) -> bool:
        """Check an allowed scheme; malformed schemes are simply not allowed."""
        if not isinstance(scheme, str) or not _SCHEME_PATTERN.fullmatch(scheme):
            return False
        return self.is_allowed(source_flags, scheme, match_all)

    # Keyword sources

    def allow_self(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.allow_token(source_flags, SELF)

    def disallow_self(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, SELF)

    def is_self_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, SELF, match_all)

    def allow_unsafe_inline(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Allow inline ``<script>``/``<style>`` elements and ``javascript:`` URLs."""
        return self.allow_token(source_flags, UNSAFE_INLINE)

    def disallow_unsafe_inline(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, UNSAFE_INLINE)

    def is_unsafe_inline_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, UNSAFE_INLINE, match_all)

    def allow_unsafe_eval(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Allow ``eval()``, ``new Function()`` and string timers."""
        return self.allow_token(source_flags, UNSAFE_EVAL)

    def disallow_unsafe_eval(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, UNSAFE_EVAL)

    def is_unsafe_eval_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, UNSAFE_EVAL, match_all)

    def allow_unsafe_hashes(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Allow hashed inline event handlers and style attributes (CSP Level 3)."""
        return self.allow_token(source_flags, UNSAFE_HASHES)

    def disallow_unsafe_hashes(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, UNSAFE_HASHES)

    def is_unsafe_hashes_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, UNSAFE_HASHES, match_all)

    def allow_strict_dynamic(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Trust scripts loaded by nonce- or hash-approved scripts (CSP Level 3).

        Browsers supporting it ignore host and keyword allow-lists in the
        same directive.
        """
        return self.allow_token(source_flags, STRICT_DYNAMIC)

    def disallow_strict_dynamic(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, STRICT_DYNAMIC)

    def is_strict_dynamic_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, STRICT_DYNAMIC, match_all)

    # Nonces and hashes

    def get_nonce(self) -> str:
        """Get the nonce attribute value for this response.

        Generated on the first call and cached, so every tag of one response
        shares the same value. Does not touch any directive.
        """
        if self._nonce is None:
            self._nonce = create_nonce()
        return self._nonce

    def _nonce_token(self) -> str:
        return f"'nonce-{self.get_nonce()}'"

    def allow_nonce(self, source_flags: Selector) -> "ContentSecurityPolicy":
        """Allow resources carrying this response's nonce attribute."""
        return self.allow_token(source_flags, self._nonce_token())

    def disallow_nonce(self, source_flags: Selector) -> "ContentSecurityPolicy":
        return self.disallow_token(source_flags, self._nonce_token())

    def is_nonce_allowed(self, source_flags: Selector, match_all: bool = True) -> bool:
        return self.is_allowed(source_flags, self._nonce_token(), match_all)

    def allow_hashed_source(
        self, source_flags: Selector, source: Union[str, bytes], algorithm: str = "sha256"
    ) -> "ContentSecurityPolicy":
        """Allow inline JS/CSS by digest.

        Args:
            source_flags: Directive selector mask
            source: Code between the ``<script>``/``<style>`` tags, whitespace included
            algorithm: One of ``sha256``, ``sha384``, ``sha512``
        """
        self._check_headers_sent()
        self._allow(source_flags, hash_source(source, algorithm))
        return self

    def disallow_hashed_source(
        self, source_flags: Selector, source: Union[str, bytes], algorithm: str = "sha256"
    ) -> "ContentSecurityPolicy":
        self._check_headers_sent()
        self._disallow(source_flags, hash_source(source, algorithm))
        return self

    def is_hashed_source_allowed(
        self,
        source_flags: Selector,
        source: Union[str, bytes],
        algorithm: str = "sha256",
        match_all: bool = True,
    ) -> bool:
        if algorithm not in HASH_ALGORITHMS:
            return False
        return self.is_allowed(source_flags, hash_source(source, algorithm), match_all)

    # Site bundles

    def allow_bundle(self, name: str) -> "ContentSecurityPolicy":
        """Apply a named bundle from ``cspbuilder.bundles.SITE_BUNDLES``.

        Raises:
            InvalidArgumentError: If no bundle has that name
        """
        self._check_headers_sent()
        steps = SITE_BUNDLES.get(name)
        if steps is None:
            raise InvalidArgumentError(f"Unknown site bundle: `{name}`.")
        for source_flags, sources in steps:
            for source in sources:
                self._allow(source_flags, source)
        logger.debug(f"Applied CSP site bundle {name}")
        return self

    def allow_google_maps_embed_api(self) -> "ContentSecurityPolicy":
        return self.allow_bundle("google-maps-embed-api")

    def allow_google_maps_js_api(self) -> "ContentSecurityPolicy":
        return self.allow_bundle("google-maps-js-api")

    def allow_google_fonts(self) -> "ContentSecurityPolicy":
        return self.allow_bundle("google-fonts")

    def allow_google_analytics(self) -> "ContentSecurityPolicy":
        return self.allow_bundle("google-analytics")

    # Introspection

    def get_directive(self, directive: Directive) -> Optional[DirectiveState]:
        """Return a copy of a directive's state, or None if unrestricted."""
        state = self._directives.get(directive)
        return state.copy() if state is not None else None

    def directives(self) -> Dict[str, Optional[List[str]]]:
        """Snapshot of configured directives in header order.

        ``'none'`` directives map to None, others to their source list.
        """
        return {
            directive.directive_name: None if state.is_none else list(state.sources)
            for directive, state in self._directives.items()
        }

    def clear(self) -> "ContentSecurityPolicy":
        self._check_headers_sent()
        self._directives.clear()
        return self

    def copy(self) -> "ContentSecurityPolicy":
        """Copy directives into an independent policy.

        The copy gets its own nonce. Where this policy allows its nonce, the
        copy allows the new one in the same position.
        """
        policy = ContentSecurityPolicy(headers_sent=self._headers_sent, header_name=self.header_name)
        own_token = self._nonce_token() if self._nonce is not None else None
        for directive, state in self._directives.items():
            state = state.copy()
            if own_token is not None and own_token in state:
                new_token = policy._nonce_token()
                state.sources = [new_token if source == own_token else source for source in state.sources]
            policy._directives[directive] = state
        return policy

    # Header codec

    def render(self) -> str:
        """Complete the header value, or an empty string without configuration."""
        return "; ".join(
            f"{directive.directive_name} {state.render()}"
            for directive, state in self._directives.items()
        )

    get_header_value = render

    def get_header(self) -> str:
        """Complete the whole ``Name: value`` header line."""
        return f"{self.header_name}: {self.render()}"

    def parse(self, header_value: str) -> "ContentSecurityPolicy":
        """Merge a header value produced elsewhere into this policy.

        Sources are added to those already configured. A ``'none'`` token turns
        its directive into ``'none'`` and ends that section. Unknown directives
        and directives without a value are skipped.
        """
        value = _WHITESPACE.sub(" ", header_value).strip()
        for section in value.split(";"):
            section = section.strip()
            if not section:
                continue
            name, _, remainder = section.partition(" ")
            if not remainder:
                logger.debug(f"Skipping CSP directive without sources: {name!r}")
                continue
            directive = lookup_selector(name.lower())
            if directive is None:
                logger.debug(f"Ignoring unknown CSP directive: {name!r}")
                continue
            for token in remainder.split(" "):
                if token == NONE:
                    self._directives[directive] = DirectiveState.none()
                    break
                state = self._directives.get(directive)
                if state is None:
                    state = self._directives[directive] = DirectiveState.allow()
                state.add(token)
        return self

    def merge_sent_headers(self, header_lines: Iterable[str]) -> "ContentSecurityPolicy":
        """Merge the first already-set ``Name: value`` line carrying this header.

        A line identical to the last merged one is not parsed again.
        """
        prefix = f"{self.header_name.lower()}:"
        for line in header_lines:
            line = line.strip()
            if not line.lower().startswith(prefix):
                continue
            if line == self._last_parsed_header:
                break
            self._last_parsed_header = line
            self.parse(line[len(prefix):])
            break
        return self

    def send(self, sink: HeaderSink) -> "ContentSecurityPolicy":
        """Hand the header to a sink accepting ``(name, value)``.

        Nothing is sent for an empty policy.

        Raises:
            HeadersAlreadySentError: If headers are committed
        """
        self._check_headers_sent()
        value = self.render()
        if value:
            sink(self.header_name, value)
        return self

    def __bool__(self) -> bool:
        return bool(self._directives)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"ContentSecurityPolicy({self.header_name!r}, {self.render()!r})"


def create_policy(
    headers_sent: Optional[HeadersSentCheck] = None,
    header_name: Optional[str] = None,
    report_only: bool = False,
) -> ContentSecurityPolicy:
    """Create an independent policy owned by the caller (one per response)."""
    return ContentSecurityPolicy(headers_sent=headers_sent, header_name=header_name, report_only=report_only)


_default_policy: Optional[ContentSecurityPolicy] = None


def default_policy() -> ContentSecurityPolicy:
    """Process-wide shared policy.

    Meant for a read-mostly policy assembled once at startup, before requests
    are served. It is not synchronized: mutating it from concurrent requests
    is a caller error. Per-response work should use ``create_policy()`` or
    ``default_policy().copy()``.
    """
    global _default_policy
    if _default_policy is None:
        _default_policy = ContentSecurityPolicy()
    return _default_policy


def reset_default_policy() -> None:
    """Discard the process-wide policy."""
    global _default_policy
    _default_policy = None
