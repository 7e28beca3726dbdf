"""Beam - ephemeral file exchange with short numeric retrieval codes."""

__version__ = "1.0.0"
