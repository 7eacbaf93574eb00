"""shell-hook - stream command output to webhooks."""

__version__ = "0.2.0"

__all__ = ["__version__"]
