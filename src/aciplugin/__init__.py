"""Configuration bootstrap and secret handling for the Cisco ACI plugin."""

__version__ = "0.1.0"
