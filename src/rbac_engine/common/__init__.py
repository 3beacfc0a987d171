"""Common utilities shared by the engine and the CLI."""

__all__ = ["logging"]
