"""
Version information for NextCap.

Read from the VERSION file next to this module; the server, the capture
client and the admin CLI all report this value.
"""

from pathlib import Path

VERSION_FILE = Path(__file__).with_name("VERSION")
DEV_VERSION = "0.0.0-dev"


def get_version(path: Path = VERSION_FILE) -> str:
    """Return the stripped contents of the VERSION file, or DEV_VERSION if unusable."""
    try:
        version = path.read_text(encoding="utf-8").strip()
    except OSError:
        return DEV_VERSION
    return version or DEV_VERSION


__version__ = get_version()
