"""Trustgate: moderation, appeal and role-governance engine."""

__version__ = "0.1.0"
