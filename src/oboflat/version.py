"""Version information for oboflat."""

__all__ = [
    "VERSION",
    "get_version",
]

VERSION = "0.1.0"


def get_version() -> str:
    """Get the software version of oboflat."""
    return VERSION
