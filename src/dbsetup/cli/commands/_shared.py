"""Shared CLI plumbing for command modules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dbsetup.core.config import Settings, load_settings

if TYPE_CHECKING:
    import typer


def get_settings(ctx: typer.Context) -> Settings:
    """Settings resolved by the root callback, resolved here when absent."""
    obj = ctx.ensure_object(dict)
    settings = obj.get("settings")
    if settings is None:
        settings = load_settings()
        obj["settings"] = settings
    return settings
