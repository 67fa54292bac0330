"""Tests for vendor extension plugins."""

from dataclasses import dataclass
from typing import Any, Optional

from contractdiff import (
    ChangeRecord,
    ChangeType,
    ContractDiffEngine,
    ElementType,
    EngineConfig,
    ExtensionChange,
    ExtensionDiff,
    ExtensionRegistry,
    Severity,
)
from conftest import make_document, make_operation, response_document


@dataclass
class ChangedRateLimit(ChangeRecord):
    element_type = ElementType.EXTENSION

    old: Optional[int] = None
    new: Optional[int] = None

    def core_severity(self) -> Severity:
        if self.old == self.new:
            return Severity.NO_CHANGES
        if self.new is not None and (self.old is None or self.new < self.old):
            return Severity.INCOMPATIBLE
        return Severity.COMPATIBLE


class RateLimitDiff(ExtensionDiff):
    """Lowering x-rate-limit throttles existing clients."""

    name = "rate-limit"

    def diff(self, change: ExtensionChange, context) -> Optional[ChangeRecord]:
        return ChangedRateLimit(old=change.old_value, new=change.new_value)


class InternalDiff(ExtensionDiff):
    """Elements flagged x-internal are not part of the public contract."""

    name = "internal"

    def diff(self, change: ExtensionChange, context) -> Optional[ChangeRecord]:
        return None

    def is_parent_applicable(self, change_type: ChangeType, parent: Any, value: Any, context) -> bool:
        return not value


def rate_limited(limit):
    return make_document({"/pets": {"get": make_operation(**{"x-rate-limit": limit})}})


class TestExtensionPlugins:
    """Test plugin dispatch."""

    def setup_method(self):
        registry = ExtensionRegistry([RateLimitDiff(), InternalDiff()])
        self.engine = ContractDiffEngine(EngineConfig(extensions=registry))

    def test_registry(self):
        """Test that plugins are keyed by their x- name."""
        registry = ExtensionRegistry([RateLimitDiff()])
        assert "x-rate-limit" in registry
        assert "rate-limit" not in registry
        assert len(registry) == 1

    def test_lowered_limit(self):
        """Test that a plugin verdict flows into the operation severity."""
        result = self.engine.compare(rate_limited(100), rate_limited(50))
        extensions = result.changed_operations[0].extensions
        assert list(extensions.changed) == ["x-rate-limit"]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_raised_limit(self):
        """Test that a compatible plugin verdict keeps the document compatible."""
        result = self.engine.compare(rate_limited(50), rate_limited(100))
        assert result.severity() == Severity.COMPATIBLE

    def test_unchanged_plugin_result_is_dropped(self):
        """Test that a plugin reporting no change leaves nothing behind."""
        result = self.engine.compare(rate_limited(50), rate_limited(50))
        assert result.is_unchanged() is True

    def test_added_extension(self):
        """Test that an extension appearing on one side is an ADDED change."""
        old = make_document({"/pets": {"get": make_operation()}})

        result = self.engine.compare(old, rate_limited(10))
        extensions = result.changed_operations[0].extensions
        assert list(extensions.increased) == ["x-rate-limit"]

    def test_unregistered_extension(self):
        """Test that extensions without a plugin are ignored."""
        old = make_document({"/pets": {"get": make_operation(**{"x-owner": "team-a"})}})
        new = make_document({"/pets": {"get": make_operation(**{"x-owner": "team-b"})}})

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_document_extensions(self):
        """Test that document-level extensions are compared."""
        old = make_document(**{"x-rate-limit": 100})
        new = make_document(**{"x-rate-limit": 10})

        result = self.engine.compare(old, new)
        assert result.changed_extensions is not None
        assert result.severity() == Severity.INCOMPATIBLE

    def test_vetoed_property(self):
        """Test that a plugin can hide removed internal properties."""
        old = response_document({"type": "object", "properties": {
            "name": {"type": "string"},
            "debug": {"type": "string", "x-internal": True},
        }})
        new = response_document({"type": "object", "properties": {"name": {"type": "string"}}})

        assert self.engine.compare(old, new).is_unchanged() is True
        assert ContractDiffEngine().compare(old, new).severity() == Severity.INCOMPATIBLE
