"""Append-only collector for definitions-repository validation errors."""

from __future__ import annotations

from collections.abc import Iterator


class ValidationErrors:
    """Maps a context (usually a filesystem path) to the messages recorded for it.

    The scanner and its helpers only ever call :meth:`add`. Concurrent scan
    branches append in whatever order they finish, so callers should treat
    the contents as a set of ``(context, message)`` pairs.
    """

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add(self, context: str, message: str) -> None:
        self._errors.setdefault(context, []).append(message)

    def messages(self, context: str) -> list[str]:
        return list(self._errors.get(context, []))

    def contexts(self) -> list[str]:
        return list(self._errors)

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield every ``(context, message)`` pair."""
        for context, messages in self._errors.items():
            for message in messages:
                yield context, message

    def format(self) -> str:
        lines = []
        for context in sorted(self._errors):
            lines.append(f"{context}:")
            lines.extend(f"  * {message}" for message in self._errors[context])
        return "\n".join(lines)

    def __contains__(self, context: object) -> bool:
        return context in self._errors

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __repr__(self) -> str:
        return f"ValidationErrors({self._errors!r})"
