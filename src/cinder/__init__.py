"""Cinder - conversation history persistence and repair for AI agents."""

__version__ = "0.1.0"
