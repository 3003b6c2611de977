"""Command-line interface for the plugin configuration bootstrap."""
