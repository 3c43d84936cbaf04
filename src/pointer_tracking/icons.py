"""
Icon retrieval for interactive zones.

This module provides the IconLoader class, which resolves an icon source
(local path or URI), decodes it and scales it to the size of the zone it
decorates. Remote icons are staged in a private scratch directory that is
removed when the loader is closed.
"""

import os
import shutil
import logging
import tempfile
import threading
from typing import Optional
from urllib.parse import urlparse, unquote

import numpy as np
import cv2
import requests

from .types import Icon, Size, URI_SCHEMES

logger = logging.getLogger(__name__)


class IconLoader:
    """
    Loads zone icons from local files or URIs.

    Failures never raise: a missing file, an HTTP error or an undecodable
    image all yield ``None`` so the zone stays usable without that icon.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        """
        Initialize the icon loader.

        Args:
            timeout: Seconds to wait for a remote icon
        """
        self.timeout = timeout
        self._scratch_dir: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def scratch_dir(self) -> str:
        """Per-instance directory for downloaded icons, created on first use."""
        with self._lock:
            if self._scratch_dir is None:
                self._scratch_dir = tempfile.mkdtemp(prefix="pointer_icons_")
            return self._scratch_dir

    @staticmethod
    def is_uri(source: str) -> bool:
        return source.lower().startswith(URI_SCHEMES)

    def load(self, source: Optional[str], size: Size) -> Optional[Icon]:
        """
        Load an icon and scale it to ``size``.

        Args:
            source: Local path or URI; None or empty means no icon
            size: Target (width, height)

        Returns:
            BGR icon of shape (height, width, 3), or None on any failure
        """
        if not source:
            return None

        if self.is_uri(source):
            image = self._load_uri(source)
        else:
            image = self._read(source)

        if image is None:
            logger.warning(f"Could not load icon from {source}")
            return None

        return self.fit(image, size)

    @staticmethod
    def fit(image: Icon, size: Size) -> Icon:
        """Convert to 8-bit 3-channel BGR and resize to (width, height)."""
        if image.dtype == np.uint16:
            image = cv2.convertScaleAbs(image, alpha=255.0 / 65535.0)
        elif np.issubdtype(image.dtype, np.floating):
            # Floating point images (HDR, EXR) are in [0, 1]
            image = cv2.convertScaleAbs(image, alpha=255.0)
        elif image.dtype != np.uint8:
            image = cv2.convertScaleAbs(image)

        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

        width, height = size
        if image.shape[1] != width or image.shape[0] != height:
            image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)
        return image

    def _read(self, path: str) -> Optional[Icon]:
        if not os.path.isfile(path):
            return None
        return cv2.imread(path, cv2.IMREAD_UNCHANGED)

    def _load_uri(self, uri: str) -> Optional[Icon]:
        parsed = urlparse(uri)
        if parsed.scheme == 'file':
            return self._read(unquote(parsed.path))

        extension = os.path.splitext(parsed.path)[1] or '.img'
        # One staging file per fetch
        fd, staged_path = tempfile.mkstemp(prefix="icon_", suffix=extension, dir=self.scratch_dir)
        os.close(fd)

        try:
            response = requests.get(uri, timeout=self.timeout)
            response.raise_for_status()
            with open(staged_path, 'wb') as f:
                f.write(response.content)
            return cv2.imread(staged_path, cv2.IMREAD_UNCHANGED)
        except (requests.exceptions.RequestException, OSError) as e:
            logger.warning(f"Error fetching icon {uri}: {str(e)}")
            return None
        finally:
            if os.path.exists(staged_path):
                os.remove(staged_path)

    def close(self) -> None:
        """Remove the scratch directory and anything left in it."""
        with self._lock:
            if self._scratch_dir is not None:
                shutil.rmtree(self._scratch_dir, ignore_errors=True)
                self._scratch_dir = None
