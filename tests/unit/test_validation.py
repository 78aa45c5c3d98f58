"""Unit tests for the ValidationErrors sink."""

from __future__ import annotations

from libdefs.validation import ValidationErrors


class TestValidationErrors:
    def test_empty(self) -> None:
        errors = ValidationErrors()
        assert not errors
        assert len(errors) == 0
        assert errors.format() == ""

    def test_messages_grouped_by_context(self) -> None:
        errors = ValidationErrors()
        errors.add("/defs/foo_v1.0.0", "Checker versions not disjoint!")
        errors.add("/defs/bar_v1.0.0/all", "No libdef file found!")
        errors.add("/defs/foo_v1.0.0", "No libdef files found!")

        assert len(errors) == 3
        assert "/defs/foo_v1.0.0" in errors
        assert "/defs/baz_v1.0.0" not in errors
        assert errors.messages("/defs/foo_v1.0.0") == [
            "Checker versions not disjoint!",
            "No libdef files found!",
        ]
        assert errors.messages("/defs/missing") == []

    def test_format_sorts_contexts(self) -> None:
        errors = ValidationErrors()
        errors.add("/defs/foo_v1.0.0", "first")
        errors.add("/defs/bar_v1.0.0", "second")

        assert errors.format() == (
            "/defs/bar_v1.0.0:\n  * second\n/defs/foo_v1.0.0:\n  * first"
        )
