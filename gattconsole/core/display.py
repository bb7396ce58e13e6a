"""Output surface consumed by the session."""

from __future__ import annotations

from typing import Protocol


class Display(Protocol):
    def line(self, text: str) -> None:
        """Show an informational line (enumerations, lifecycle notices)."""

    def value(self, text: str) -> None:
        """Show an inbound characteristic value, already prefixed."""

    def error(self, text: str) -> None:
        """Show a non-fatal error line."""
