"""Directive registry for Content Security Policy headers.

Every known directive owns one stable bit of a selector bitmask, so callers can
address several directives at once:

    Directive.SCRIPT_SRC | Directive.STYLE_SRC

Bits are never renumbered because applications persist mask constants.
Bits 1024, 2048, 8192 and 16384 are reserved and select nothing.

References:
- W3C CSP Level 3: https://www.w3.org/TR/CSP3/
- MDN: https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Content-Security-Policy
"""

from enum import IntFlag
from typing import Dict, List, Optional, Tuple, Union


class Directive(IntFlag):
    """Selector bits for the supported CSP directives."""

    # Fetch directives
    CHILD_SRC = 1
    CONNECT_SRC = 2
    DEFAULT_SRC = 4
    FONT_SRC = 8
    FRAME_SRC = 16
    IMG_SRC = 32
    MANIFEST_SRC = 64
    MEDIA_SRC = 128
    OBJECT_SRC = 256
    SCRIPT_SRC = 512
    STYLE_SRC = 4096

    # Document directives
    BASE_URI = 32768
    PLUGIN_TYPES = 65536
    SANDBOX = 131072

    # Navigation directives
    FORM_ACTION = 262144
    FRAME_ANCESTORS = 524288
    NAVIGATE_TO = 1048576

    # Other directives
    BLOCK_ALL_MIXED_CONTENT = 2097152
    UPGRADE_INSECURE_REQUESTS = 4194304

    @property
    def directive_name(self) -> str:
        """Wire name of a single-bit selector, e.g. ``script-src``."""
        name = lookup_name(self)
        if name is None:
            raise ValueError(f"{self!r} does not select exactly one directive")
        return name


Selector = Union[int, Directive]


# Registry order; also the order used when expanding a mask.
_REGISTRY: List[Tuple[str, Directive]] = [
    ("child-src", Directive.CHILD_SRC),
    ("connect-src", Directive.CONNECT_SRC),
    ("default-src", Directive.DEFAULT_SRC),
    ("font-src", Directive.FONT_SRC),
    ("frame-src", Directive.FRAME_SRC),
    ("img-src", Directive.IMG_SRC),
    ("manifest-src", Directive.MANIFEST_SRC),
    ("media-src", Directive.MEDIA_SRC),
    ("object-src", Directive.OBJECT_SRC),
    ("script-src", Directive.SCRIPT_SRC),
    ("style-src", Directive.STYLE_SRC),
    ("base-uri", Directive.BASE_URI),
    ("plugin-types", Directive.PLUGIN_TYPES),
    ("sandbox", Directive.SANDBOX),
    ("form-action", Directive.FORM_ACTION),
    ("frame-ancestors", Directive.FRAME_ANCESTORS),
    ("navigate-to", Directive.NAVIGATE_TO),
    ("block-all-mixed-content", Directive.BLOCK_ALL_MIXED_CONTENT),
    ("upgrade-insecure-requests", Directive.UPGRADE_INSECURE_REQUESTS),
]

_BY_NAME: Dict[str, Directive] = {name: bit for name, bit in _REGISTRY}
_BY_BIT: Dict[int, str] = {int(bit): name for name, bit in _REGISTRY}


FETCH_DIRECTIVES = (
    Directive.CHILD_SRC
    | Directive.CONNECT_SRC
    | Directive.DEFAULT_SRC
    | Directive.FONT_SRC
    | Directive.FRAME_SRC
    | Directive.IMG_SRC
    | Directive.MANIFEST_SRC
    | Directive.MEDIA_SRC
    | Directive.OBJECT_SRC
    | Directive.SCRIPT_SRC
    | Directive.STYLE_SRC
)

DOCUMENT_DIRECTIVES = Directive.BASE_URI | Directive.PLUGIN_TYPES | Directive.SANDBOX

NAVIGATION_DIRECTIVES = Directive.FORM_ACTION | Directive.FRAME_ANCESTORS | Directive.NAVIGATE_TO

OTHER_DIRECTIVES = Directive.BLOCK_ALL_MIXED_CONTENT | Directive.UPGRADE_INSECURE_REQUESTS

ALL_DIRECTIVES = FETCH_DIRECTIVES | DOCUMENT_DIRECTIVES | NAVIGATION_DIRECTIVES | OTHER_DIRECTIVES


def lookup_selector(name: str) -> Optional[Directive]:
    """Return the selector bit for a directive name, or None if unknown."""
    return _BY_NAME.get(name)


def lookup_name(bit: Selector) -> Optional[str]:
    """Return the directive name for a single-bit selector.

    Masks combining several directives (or no known directive) return None.
    """
    return _BY_BIT.get(int(bit))


def all_directives() -> List[Tuple[str, Directive]]:
    """Return every ``(name, bit)`` pair in registry order."""
    return list(_REGISTRY)


def expand(flags: Selector) -> List[Directive]:
    """Expand a selector mask into the directives it selects, in registry order.

    Unassigned bits are ignored.
    """
    mask = int(flags)
    return [bit for _, bit in _REGISTRY if mask & bit]


def is_single(flags: Selector) -> bool:
    """True when the mask selects exactly one known directive."""
    return len(expand(flags)) == 1
