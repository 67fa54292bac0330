"""Tests for security requirement, security scheme and OAuth flow comparison."""

import copy

from contractdiff import ContractDiffEngine, EngineConfig, ErrorResponse, Severity
from conftest import make_document, make_operation


SCHEMES = {
    "api_key": {"type": "apiKey", "name": "X-API-Key", "in": "header"},
    "partner_key": {"type": "apiKey", "name": "X-Partner-Key", "in": "header"},
    "bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
    "oauth": {
        "type": "oauth2",
        "flows": {
            "authorizationCode": {
                "authorizationUrl": "https://auth.example.com/authorize",
                "tokenUrl": "https://auth.example.com/token",
                "scopes": {"read": "Read pets", "write": "Write pets"},
            },
        },
    },
}


def secured_document(security, schemes=None, global_security=None):
    extra = {}
    if global_security is not None:
        extra["security"] = global_security
    operation = make_operation() if security is None else make_operation(security=security)
    return make_document(
        {"/pets": {"get": operation}},
        {"securitySchemes": copy.deepcopy(schemes or SCHEMES)},
        **extra,
    )


class TestSecurityRequirements:
    """Test matching of alternative requirements."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_unchanged(self):
        """Test that identical requirements are unchanged."""
        document = secured_document([{"api_key": []}, {"oauth": ["read"]}])

        result = self.engine.compare(document, copy.deepcopy(document))
        assert result.is_unchanged() is True

    def test_removed_alternative(self):
        """Test that dropping an accepted alternative is incompatible."""
        old = secured_document([{"api_key": []}, {"bearer": []}])
        new = secured_document([{"api_key": []}])

        result = self.engine.compare(old, new)
        requirements = result.changed_operations[0].security_requirements
        assert requirements.missing == [{"bearer": []}]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_added_alternative(self):
        """Test that accepting another alternative is compatible."""
        old = secured_document([{"api_key": []}])
        new = secured_document([{"api_key": []}, {"bearer": []}])

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE

    def test_renamed_scheme_matches_by_type(self):
        """Test that requirements match on scheme type and location, not name."""
        schemes = dict(SCHEMES)
        schemes["token"] = schemes.pop("bearer")
        old = secured_document([{"bearer": []}])
        new = secured_document([{"token": []}], schemes)

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_scheme_added_to_requirement(self):
        """Test that demanding an extra scheme together with the old one is incompatible."""
        old = secured_document([{"api_key": []}])
        new = secured_document([{"api_key": [], "partner_key": []}])

        result = self.engine.compare(old, new)
        requirement = result.changed_operations[0].security_requirements.changed[0]
        assert list(requirement.increased) == ["partner_key"]
        assert requirement.severity() == Severity.INCOMPATIBLE

    def test_scheme_removed_from_requirement(self):
        """Test that demanding fewer schemes is compatible."""
        old = secured_document([{"api_key": [], "partner_key": []}])
        new = secured_document([{"api_key": []}])

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE


class TestGlobalSecurity:
    """Test document-level security push-down."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_global_security_moved_to_operation(self):
        """Test that moving security from the document to the operation is not a change."""
        old = secured_document(None, global_security=[{"api_key": []}])
        new = secured_document([{"api_key": []}])

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_operation_security_overrides_global(self):
        """Test that an operation's own security list wins."""
        old = secured_document([], global_security=[{"api_key": []}])
        new = secured_document([])

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_duplicate_requirements_collapse(self):
        """Test that a repeated requirement counts once."""
        old = secured_document([{"api_key": []}, {"api_key": []}])
        new = secured_document([{"api_key": []}])

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_push_down_can_be_disabled(self):
        """Test that global security is ignored when push-down is off."""
        engine = ContractDiffEngine(EngineConfig(apply_global_security=False))
        old = secured_document(None, global_security=[{"api_key": []}])
        new = secured_document([{"api_key": []}])

        result = engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE


class TestSecuritySchemes:
    """Test scheme-level rules."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def with_scheme(self, name, **changes):
        schemes = copy.deepcopy(SCHEMES)
        schemes[name].update(changes)
        return schemes

    def test_http_scheme_changed(self):
        """Test that switching the HTTP auth scheme is incompatible."""
        old = secured_document([{"bearer": []}])
        new = secured_document([{"bearer": []}], self.with_scheme("bearer", scheme="basic"))

        result = self.engine.compare(old, new)
        scheme = result.changed_operations[0].security_requirements.changed[0].changed[0]
        assert scheme.name == "bearer"
        assert scheme.scheme_changed is True
        assert result.severity() == Severity.INCOMPATIBLE

    def test_http_scheme_case(self):
        """Test that HTTP auth scheme names compare case-insensitively."""
        old = secured_document([{"bearer": []}])
        new = secured_document([{"bearer": []}], self.with_scheme("bearer", scheme="Bearer"))

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_bearer_format_changed(self):
        """Test that a bearer format change is incompatible."""
        old = secured_document([{"bearer": []}])
        new = secured_document([{"bearer": []}], self.with_scheme("bearer", bearerFormat="opaque"))

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.INCOMPATIBLE

    def test_scheme_description_is_metadata(self):
        """Test that describing a scheme is metadata only."""
        old = secured_document([{"api_key": []}])
        new = secured_document([{"api_key": []}], self.with_scheme("api_key", description="Partner key"))

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.METADATA

    def test_scope_removed(self):
        """Test that asking for fewer scopes is compatible."""
        old = secured_document([{"oauth": ["read", "write"]}])
        new = secured_document([{"oauth": ["read"]}])

        result = self.engine.compare(old, new)
        scheme = result.changed_operations[0].security_requirements.changed[0].changed[0]
        assert scheme.changed_scopes.missing == ["write"]
        assert scheme.severity() == Severity.COMPATIBLE

    def test_scope_added(self):
        """Test that asking for more scopes is incompatible."""
        old = secured_document([{"oauth": ["read"]}])
        new = secured_document([{"oauth": ["read", "write"]}])

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.INCOMPATIBLE

    def test_token_url_changed(self):
        """Test that moving the token endpoint is incompatible."""
        schemes = copy.deepcopy(SCHEMES)
        schemes["oauth"]["flows"]["authorizationCode"]["tokenUrl"] = "https://login.example.com/token"
        old = secured_document([{"oauth": ["read"]}])
        new = secured_document([{"oauth": ["read"]}], schemes)

        result = self.engine.compare(old, new)
        scheme = result.changed_operations[0].security_requirements.changed[0].changed[0]
        flow = scheme.oauth_flows.flows["authorizationCode"]
        assert flow.token_url_changed is True
        assert flow.authorization_url_changed is False
        assert result.severity() == Severity.INCOMPATIBLE

    def test_unknown_scheme_type(self):
        """Test that an unknown scheme type cannot be compared."""
        schemes = {"custom": {"type": "magic"}}
        document = secured_document([{"custom": []}], schemes)

        result = self.engine.compare(document, copy.deepcopy(document))
        assert isinstance(result, ErrorResponse)
        assert result.error["code"] == "UNSUPPORTED_SCHEMA"

    def test_undefined_scheme(self):
        """Test that a requirement naming an undefined scheme is reported."""
        document = secured_document([{"missing": []}])

        result = self.engine.compare(document, copy.deepcopy(document))
        assert result.error["code"] == "UNRESOLVED_REF"
        assert result.error["details"]["ref"] == "missing"
