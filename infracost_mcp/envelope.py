"""Uniform result envelope shared by the CLI and Cloud backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CommandResult:
    """Result of one backend call.

    ``success=True`` never carries ``error``; ``success=False`` carries only a
    non-empty ``error``.
    """

    success: bool
    output: str | None = None
    error: str | None = None
    data: Any = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("failed result requires a non-empty error")
            if self.output is not None or self.data is not None:
                raise ValueError("failed result cannot carry output or data")

    @classmethod
    def ok(cls, output: str | None = None, data: Any = None) -> CommandResult:
        return cls(success=True, output=output, data=data)

    @classmethod
    def fail(cls, error: str) -> CommandResult:
        return cls(success=False, error=error or "Unknown error occurred")

    def to_dict(self) -> dict[str, Any]:
        """Serialize without absent fields."""
        out: dict[str, Any] = {"success": self.success}
        if self.output is not None:
            out["output"] = self.output
        if self.error is not None:
            out["error"] = self.error
        if self.data is not None:
            out["data"] = self.data
        return out
