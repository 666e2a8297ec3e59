"""gatehouse: username/password accounts, server-side sessions and a gated dashboard."""

__version__ = "0.1.0"
