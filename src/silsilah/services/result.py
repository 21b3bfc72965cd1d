"""CommandResult and CommandError: the universal command contract.

INVARIANT: Every CommandBus operation returns a CommandResult.
The CLI and any embedding application consume this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CommandError(BaseModel):
    """Structured error payload within a CommandResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class CommandResult(BaseModel):
    """Universal return type for all command operations.

    Attributes:
        success: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"add_spouse_relationship"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``success`` is False.
        meta: Optional metadata (tree version, actor, etc.).
    """

    model_config = {"frozen": True}

    success: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: CommandError | None = None
    meta: dict[str, Any] | None = None
