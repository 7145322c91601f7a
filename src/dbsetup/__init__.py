"""dbsetup - Supabase starter client factory and schema export tool."""

from dbsetup.__about__ import __version__

__all__ = ["__version__"]
