"""Tests for declarative CSP configuration and presets."""

import pytest

from cspbuilder import (
    ConfigurationError,
    CSPConfig,
    CSPPreset,
    Directive,
    HeadersAlreadySentError,
    ResponseHeaders,
    render,
)


class TestCSPConfig:
    """Test CSPConfig dataclass functionality."""

    def test_auto_quote_keywords(self):
        """Test that CSP keywords are auto-quoted."""
        config = CSPConfig(default_src=["self"])
        assert config.build_header() == "default-src 'self'"

    def test_auto_quote_multiple_keywords(self):
        config = CSPConfig(script_src=["self", "unsafe-inline", "unsafe-eval"])
        assert config.build_header() == "script-src 'self' 'unsafe-inline' 'unsafe-eval'"

    def test_urls_and_wildcards_not_quoted(self):
        config = CSPConfig(img_src=["self", "*.example.com", "data:", "https://cdn.jsdelivr.net"])
        assert config.build_header() == "img-src 'self' *.example.com data: https://cdn.jsdelivr.net"

    def test_already_quoted_preserved(self):
        config = CSPConfig(script_src=["'self'", "'unsafe-inline'"])
        assert config.build_header() == "script-src 'self' 'unsafe-inline'"

    def test_hash_and_nonce_sources_quoted(self):
        config = CSPConfig(script_src=["sha256-abc=", "nonce-xyz"])
        assert config.build_header() == "script-src 'sha256-abc=' 'nonce-xyz'"

    def test_none_renders_none(self):
        config = CSPConfig(object_src=["none"])
        assert config.build_header() == "object-src 'none'"

    def test_callable_sources(self):
        config = CSPConfig(connect_src=lambda: ["self", "wss://live.example.com"])
        assert config.build_header() == "connect-src 'self' wss://live.example.com"

    def test_empty_list_is_skipped(self):
        assert CSPConfig(img_src=[]).build_header() == ""

    def test_directives_follow_field_order(self):
        config = CSPConfig(form_action=["self"], default_src=["self"], frame_ancestors=["none"])
        assert config.build_header() == (
            "default-src 'self'; form-action 'self'; frame-ancestors 'none'"
        )

    def test_nonce_value_on_script_and_style(self):
        config = CSPConfig(script_src=["self"], style_src=["self"], img_src=["self"], nonce=True)
        header = config.build_header(nonce_value="xyz789")
        assert header == (
            "img-src 'self'; script-src 'self' 'nonce-xyz789'; style-src 'self' 'nonce-xyz789'"
        )

    def test_nonce_skips_unconfigured_and_none_directives(self):
        config = CSPConfig(default_src=["self"], script_src=["none"], nonce=True)
        assert config.build_header(nonce_value="n") == "default-src 'self'; script-src 'none'"

    def test_generated_nonce_matches_policy(self):
        config = CSPConfig(script_src=["self"], nonce=True)
        policy = config.build_policy()
        assert policy.is_nonce_allowed(Directive.SCRIPT_SRC)

    def test_header_names(self):
        assert CSPConfig().get_header_name() == "Content-Security-Policy"
        assert CSPConfig(report_only=True).get_header_name() == "Content-Security-Policy-Report-Only"
        assert CSPConfig(header_name="X-CSP").get_header_name() == "X-CSP"

    def test_build_policy_is_guarded(self):
        headers = ResponseHeaders()
        policy = CSPConfig(default_src=["self"]).build_policy(headers_sent=headers.is_committed)
        headers.commit()
        with pytest.raises(HeadersAlreadySentError):
            policy.allow_self(Directive.IMG_SRC)

    def test_nonce_value_becomes_policy_nonce(self):
        """A nonce managed elsewhere is the one the policy hands to templates."""
        config = CSPConfig(script_src=["self"], style_src=["self"], nonce=True)
        policy = config.build_policy(nonce_value="x")
        assert policy.get_nonce() == "x"
        assert policy.is_nonce_allowed(Directive.SCRIPT_SRC | Directive.STYLE_SRC)
        assert render(inline="{{ csp_nonce }}", policy=policy) == "x"

    def test_build_policy_returns_fresh_instances(self):
        config = CSPConfig(script_src=["self"], nonce=True)
        assert config.build_policy().get_nonce() != config.build_policy().get_nonce()


class TestFromDict:
    """Test loading configuration from wire-named mappings."""

    def test_from_dict(self):
        config = CSPConfig.from_dict({
            "directives": {
                "default-src": ["self"],
                "img-src": ["self", "data:"],
                "block-all-mixed-content": ["none"],
            },
            "report_only": True,
        })
        assert config.default_src == ["self"]
        assert config.report_only is True
        assert config.build_header() == (
            "default-src 'self'; img-src 'self' data:; block-all-mixed-content 'none'"
        )

    def test_unknown_directive_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CSPConfig.from_dict({"directives": {"worker-src": ["self"]}})
        assert exc_info.value.original_exception is not None

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError):
            CSPConfig.from_dict({"report_uri": "/csp"})

    def test_wrong_type_rejected(self):
        with pytest.raises(ValueError):
            CSPConfig.from_dict({"directives": {"img-src": "self"}})


class TestCSPPresets:
    """Test CSP preset configurations."""

    def test_strict_preset(self):
        assert CSPPreset.STRICT.build_header() == (
            "default-src 'self'; object-src 'none'; base-uri 'self'; form-action 'self'"
        )

    def test_basic_preset(self):
        assert CSPPreset.BASIC.build_header() == "default-src 'self'"

    def test_relaxed_preset(self):
        header = CSPPreset.RELAXED.build_header()
        assert "default-src 'self'" in header
        assert "style-src 'self' 'unsafe-inline'" in header
        assert "img-src 'self' data: https:" in header

    def test_development_preset_is_report_only(self):
        assert CSPPreset.DEVELOPMENT.get_header_name() == "Content-Security-Policy-Report-Only"
        assert "'unsafe-eval'" in CSPPreset.DEVELOPMENT.build_header()
