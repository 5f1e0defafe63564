"""Individual media-type detection strategies used by :class:`MimeSniffer`."""

from __future__ import annotations

import mimetypes
import os
from abc import ABC, abstractmethod
from pathlib import Path

from src.utils.logging import get_logger

logger = get_logger(__name__)

ZIP_MEDIA_TYPE = "application/zip"

# Office and archive formats that content sniffers commonly report as a bare
# ZIP container.
_EXTENSION_CORRECTIONS: dict[str, str] = {
    "7z": "application/x-7z-compressed",
    "xlsx": "application/msexcel",
    "xltx": "application/msexcel",
    "xlsm": "application/msexcel",
    "xltm": "application/msexcel",
    "xlam": "application/msexcel",
    "xlsb": "application/msexcel",
    "docx": "application/msword",
    "dotx": "application/msword",
    "docm": "application/msword",
    "dotm": "application/msword",
    "pptx": "application/mspowerpoint",
    "potx": "application/mspowerpoint",
    "ppsx": "application/mspowerpoint",
    "ppam": "application/mspowerpoint",
    "pptm": "application/mspowerpoint",
    "potm": "application/mspowerpoint",
    "ppsm": "application/mspowerpoint",
    "vsd": "application/x-visio",
    "vsdx": "application/x-visio",
}


class Detector(ABC):
    """A single strategy in the detection chain.

    ``detect`` returns ``None`` when the strategy has no confident answer,
    letting the chain move on to the next one.
    """

    name: str = "detector"

    @abstractmethod
    def detect(self, path: Path) -> str | None:
        ...


class MagicDetector(Detector):
    """Content sniffing through libmagic (``python-magic``).

    libmagic is a system library; when it cannot be loaded the detector
    simply never answers.
    """

    name = "magic"

    def detect(self, path: Path) -> str | None:
        try:
            import magic  # noqa: WPS433
        except ImportError:
            logger.debug("magic_unavailable")
            return None

        try:
            sniffer = magic.Magic(mime=True)
            result = sniffer.from_file(str(path))
        except (magic.MagicException, OSError) as exc:
            logger.warning("magic_detection_failed", path=str(path), error=str(exc))
            return None

        return result or None


class PlatformDetector(Detector):
    """Classification from the operating system's ``mime.types`` tables.

    Only active when at least one of the well-known system tables exists.
    """

    name = "platform"

    def __init__(self, table_files: list[str] | None = None) -> None:
        candidates = mimetypes.knownfiles if table_files is None else table_files
        self.table_files = [f for f in candidates if os.path.isfile(f)]
        self._types: mimetypes.MimeTypes | None = None
        if self.table_files:
            self._types = mimetypes.MimeTypes(filenames=self.table_files)

    @property
    def available(self) -> bool:
        return self._types is not None

    def detect(self, path: Path) -> str | None:
        if self._types is None:
            return None
        media_type, _ = self._types.guess_type(path.name, strict=False)
        return media_type


class ExtensionDetector(Detector):
    """Static extension table for container formats misread as plain ZIP."""

    name = "extension"

    def __init__(self, table: dict[str, str] | None = None) -> None:
        self.table = _EXTENSION_CORRECTIONS if table is None else table

    def detect(self, path: Path) -> str | None:
        extension = path.suffix.lstrip(".").lower()
        return self.table.get(extension)
