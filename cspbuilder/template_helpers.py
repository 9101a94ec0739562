"""
Template rendering helpers that expose the CSP nonce to Jinja2 templates.
"""

import os
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, PackageLoader, Template, select_autoescape
from jinja2.loaders import BaseLoader
from markupsafe import Markup, escape

from .policy import ContentSecurityPolicy


def nonce_context(policy: ContentSecurityPolicy) -> Dict[str, Any]:
    """Template variables carrying the response nonce.

    ``csp_nonce`` is the bare value, ``csp_nonce_attr`` a ready-made
    ` nonce="..."` attribute:

        <script{{ csp_nonce_attr }}>...</script>
    """
    nonce = policy.get_nonce()
    return {
        "csp_nonce": nonce,
        "csp_nonce_attr": Markup(' nonce="%s"') % escape(nonce),
    }


def render(
    template: Optional[str] = None,
    package: str = "views",
    unsafe: bool = False,
    inline: Optional[str] = None,
    policy: Optional[ContentSecurityPolicy] = None,
    **kwargs: Any
) -> str:
    """
    Render a template using Jinja2.

    When a policy is given, ``csp_nonce`` and ``csp_nonce_attr`` are added to
    the template context so that every inline tag of the response shares the
    policy's nonce. Pair it with ``policy.allow_nonce(...)``.

    Args:
        template: Path to the template file relative to the package/views directory.
                 Ignored if `inline` is provided.
        package: Package name or directory path for templates. Defaults to "views".
        unsafe: If False (default), autoescape is enabled for security.
        inline: Optional inline template string.
        policy: Optional policy whose nonce is exposed to the template.
        **kwargs: Variables to pass to the template context for rendering.

    Returns:
        The rendered template as a string.

    Examples:
        policy = create_policy()
        policy.allow_nonce(Directive.SCRIPT_SRC)
        render(inline="<script{{ csp_nonce_attr }}>go()</script>", policy=policy)
    """
    if policy is not None:
        kwargs = {**nonce_context(policy), **kwargs}

    if inline:
        template_obj = Template(
            inline,
            autoescape=not unsafe
        )
        return template_obj.render(**kwargs)

    if not template:
        raise ValueError("Either 'template' or 'inline' parameter must be provided")

    loader: Optional[BaseLoader] = None

    possible_paths = [
        package,
        os.path.join(os.getcwd(), package),
    ]
    for path in possible_paths:
        if os.path.isdir(path):
            loader = FileSystemLoader(path)
            break

    if loader is None:
        try:
            loader = PackageLoader(package)
        except (ImportError, ValueError, ModuleNotFoundError):
            # Neither a directory nor an importable package
            pass

    if loader is None:
        raise ValueError(
            f"Could not find template directory or package '{package}'. "
            f"Tried paths: {possible_paths}"
        )

    # autoescape can be disabled via unsafe=True for trusted content
    env = Environment(  # nosec B701
        loader=loader,
        autoescape=select_autoescape() if not unsafe else False
    )
    try:
        template_obj = env.get_template(template)
    except Exception as e:
        raise ValueError(
            f"Failed to load template '{template}' from package/directory '{package}'. "
            f"Original error: {str(e)}"
        ) from e
    return template_obj.render(**kwargs)
