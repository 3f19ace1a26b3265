"""Calendar week/month grid layout from remote calendar providers."""

__version__ = "0.1.0"
