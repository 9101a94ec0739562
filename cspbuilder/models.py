"""
Core data models for the CSP builder.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from .keywords import NONE


class DirectiveMode(Enum):
    """How a configured directive restricts its resources."""

    NONE = "none"
    ALLOW = "allow"


@dataclass
class DirectiveState:
    """State of one configured directive.

    A directive absent from a policy is unrestricted and has no state object.
    ``sources`` keeps insertion order and never holds duplicates.
    """

    mode: DirectiveMode
    sources: List[str] = field(default_factory=list)

    @classmethod
    def none(cls) -> "DirectiveState":
        return cls(DirectiveMode.NONE)

    @classmethod
    def allow(cls, *sources: str) -> "DirectiveState":
        state = cls(DirectiveMode.ALLOW)
        for source in sources:
            state.add(source)
        return state

    @property
    def is_none(self) -> bool:
        return self.mode is DirectiveMode.NONE

    def add(self, source: str) -> None:
        """Add a source token, switching a 'none' directive to allow mode."""
        if self.mode is DirectiveMode.NONE:
            self.mode = DirectiveMode.ALLOW
            self.sources = []
        if source not in self.sources:
            self.sources.append(source)

    def discard(self, source: str) -> None:
        if source in self.sources:
            self.sources.remove(source)

    def __contains__(self, source: str) -> bool:
        return self.mode is DirectiveMode.ALLOW and source in self.sources

    def copy(self) -> "DirectiveState":
        return DirectiveState(self.mode, list(self.sources))

    def render(self) -> str:
        """Render the value part of a directive section."""
        if self.is_none:
            return NONE
        return " ".join(self.sources)


@dataclass
class ResponseHeaders:
    """Outgoing response headers with a commit flag.

    Plays the collaborator roles a policy needs: the "headers sent" guard
    (``is_committed``), a header sink (``set_header``) and a source of already
    set header lines (``header_lines``).
    """

    headers: Optional[Dict[str, str]] = None
    committed: bool = False

    def __post_init__(self):
        if self.headers is None:
            self.headers = {}

    def is_committed(self) -> bool:
        return self.committed

    def commit(self) -> None:
        """Mark headers as sent to the transport."""
        self.committed = True

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any existing one with the same name in any case."""
        if self.headers is None:
            self.headers = {}
        lowered = name.lower()
        for key in [key for key in self.headers if key.lower() == lowered]:
            del self.headers[key]
        self.headers[name] = value

    def get_header(self, name: str) -> Optional[str]:
        """Get a header value by case-insensitive name."""
        if not self.headers:
            return None
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def header_lines(self) -> List[str]:
        """Return headers in ``Name: value`` form."""
        return list(self)

    def __iter__(self) -> Iterator[str]:
        for name, value in (self.headers or {}).items():
            yield f"{name}: {value}"
