"""App-private picture storage. Isolates file allocation from the broker."""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
IMAGE_SUFFIX = ".jpg"


class MediaStorage:
    """Allocates capture destinations under a single picture directory."""

    def __init__(self, picture_dir: Path):
        self.picture_dir = Path(picture_dir)

    def create_image_file(self, now: Optional[datetime] = None) -> Path:
        """Create an empty, uniquely named image file and return its path.

        Raises OSError when the directory or file cannot be created.
        """
        return create_image_file(self.picture_dir, now=now)


def create_image_file(directory: Path, now: Optional[datetime] = None) -> Path:
    """Create `JPEG_<yyyyMMdd_HHmmss>_<random>.jpg` inside `directory`."""
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=f"JPEG_{stamp}_", suffix=IMAGE_SUFFIX, dir=directory)
    os.close(fd)
    logger.debug("Created image file %s", name)
    return Path(name)


def as_share_handle(path: Path) -> str:
    """Return a sharable handle (file URI) for a storage path."""
    return Path(path).resolve().as_uri()
