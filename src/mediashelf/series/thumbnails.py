"""Resolution of thumbnail references to local image files.

Thumbnail urls are either ``file:`` URIs or plain filesystem paths.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from ..utils.logging import get_logger

LOG = get_logger("mediashelf.series.thumbnails")


def to_url(path: Path) -> str:
    """Build a ``file:`` URI for an image path."""
    return Path(path).resolve().as_uri()


def resolve_path(url: str) -> Path:
    """Turn a thumbnail url into a filesystem path."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    return Path(url)


def resource_exists(url: str) -> bool:
    """Check whether the image behind a thumbnail url is still there.

    I/O errors count as "missing".
    """
    try:
        return resolve_path(url).is_file()
    except (OSError, ValueError):
        LOG.debug("Could not stat thumbnail %s", url, exc_info=True)
        return False


def read_resource(url: str) -> Optional[bytes]:
    """Read the image behind a thumbnail url, or None if it cannot be read."""
    try:
        return resolve_path(url).read_bytes()
    except (OSError, ValueError):
        LOG.warning("Could not read thumbnail %s", url, exc_info=True)
        return None
