"""
Tests for template rendering with the CSP nonce.
"""

import pytest

from cspbuilder import Directive, create_policy, render


class TestNonceTemplates:
    """Test that templates share the policy nonce."""

    def test_inline_template_gets_nonce(self):
        policy = create_policy()
        policy.allow_nonce(Directive.SCRIPT_SRC)

        html = render(
            inline="<script{{ csp_nonce_attr }}>a()</script><script nonce=\"{{ csp_nonce }}\">b()</script>",
            policy=policy,
        )

        nonce = policy.get_nonce()
        assert html == f'<script nonce="{nonce}">a()</script><script nonce="{nonce}">b()</script>'
        assert f"'nonce-{nonce}'" in policy.render()

    def test_without_policy_no_nonce_variables(self):
        assert render(inline="[{{ csp_nonce }}]") == "[]"

    def test_explicit_kwargs_win(self):
        policy = create_policy()
        assert render(inline="{{ csp_nonce }}", policy=policy, csp_nonce="fixed") == "fixed"

    def test_autoescape_still_applies(self):
        policy = create_policy()
        assert render(inline="{{ body }}", policy=policy, body="<b>") == "&lt;b&gt;"

    def test_file_template(self, tmp_path):
        (tmp_path / "page.html").write_text("<style{{ csp_nonce_attr }}></style>")
        policy = create_policy()
        html = render(template="page.html", package=str(tmp_path), policy=policy)
        assert html == f'<style nonce="{policy.get_nonce()}"></style>'

    def test_missing_template_arguments(self):
        with pytest.raises(ValueError):
            render()

    def test_missing_template_file(self, tmp_path):
        with pytest.raises(ValueError):
            render(template="missing.html", package=str(tmp_path))
