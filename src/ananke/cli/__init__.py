"""Command line interface for ananke."""
