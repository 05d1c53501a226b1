"""themehook: receive theme webhooks and push style updates to live viewers."""

__version__ = "0.1.0"
