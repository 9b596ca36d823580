from importlib import metadata
from pathlib import Path

DIST_NAME = "hlsrelay"
DEFAULT_VERSION = "0.0.0"
# Source checkouts carry VERSION next to pyproject.toml.
VERSION_FILE = Path(__file__).resolve().parents[1] / "VERSION"


def get_version() -> str:
    """Version of the running relay, as reported by /health and the OpenAPI schema."""
    if VERSION_FILE.is_file():
        text = VERSION_FILE.read_text(encoding="utf-8").strip()
        if text:
            return text
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return DEFAULT_VERSION


__version__ = get_version()
