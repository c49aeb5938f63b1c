"""Command-line interface for the usage collector and its document server."""
