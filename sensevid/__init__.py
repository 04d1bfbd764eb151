"""Low-complexity video encoding, packet traces and received-video rebuilding for video sensor networks."""

__version__ = "0.1.0"
__all__ = ["__version__"]