"""Command line interface for narrative files."""
