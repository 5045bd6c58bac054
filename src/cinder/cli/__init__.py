"""Command line interface for Cinder."""
