"""
Version utility functions.
"""

from wayfinder import __version__


def get_version() -> str:
    """
    Get the current version of Wayfinder.

    Returns:
        str: The version string.
    """
    return __version__


def format_version_info() -> dict[str, str]:
    """
    Get formatted version information.

    Returns:
        dict[str, str]: Dictionary containing version information.
    """
    return {
        "version": get_version(),
        "project": "Wayfinder",
        "description": "Shortest-path search over road networks and terrain grids",
    }
