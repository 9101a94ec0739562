"""Canned source lists for commonly embedded third-party services.

Each bundle is an ordered list of ``(selector, sources)`` steps applied with
``ContentSecurityPolicy.allow_hosts``.
"""

from typing import Dict, List, Tuple

from .directives import Directive, Selector
from .keywords import SELF

BundleSteps = List[Tuple[Selector, List[str]]]


SITE_BUNDLES: Dict[str, BundleSteps] = {
    # Google Maps Embed API <iframe>
    "google-maps-embed-api": [
        (Directive.FRAME_SRC, ["https://www.google.com/"]),
    ],
    "google-maps-js-api": [
        (Directive.SCRIPT_SRC, [
            "https://maps.googleapis.com",
            "https://maps.google.com",
            "https://maps.gstatic.com",
        ]),
        (Directive.IMG_SRC, [
            "data:",
            "https://maps.gstatic.com",
            "https://maps.googleapis.com",
        ]),
    ],
    "google-fonts": [
        (Directive.STYLE_SRC, ["https://fonts.googleapis.com"]),
        (Directive.IMG_SRC | Directive.FONT_SRC, ["https://fonts.gstatic.com"]),
    ],
    "google-analytics": [
        (Directive.SCRIPT_SRC, [SELF]),
        (Directive.IMG_SRC | Directive.CONNECT_SRC | Directive.SCRIPT_SRC, [
            "https://www.googletagmanager.com",
            "https://*.google-analytics.com",
            "https://ajax.googleapis.com",
        ]),
        (Directive.IMG_SRC | Directive.CONNECT_SRC, ["https://stats.g.doubleclick.net"]),
        (Directive.FRAME_SRC, ["https://*.fls.doubleclick.net"]),
        (Directive.IMG_SRC, ["https://www.google.com"]),
    ],
}
