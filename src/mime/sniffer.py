"""Layered media-type detection."""

from __future__ import annotations

import os
from pathlib import Path

from src.mime.detectors import (
    ZIP_MEDIA_TYPE,
    Detector,
    ExtensionDetector,
    MagicDetector,
    PlatformDetector,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class MimeSniffer:
    """Runs *detectors* in order and keeps the first answer.

    The *correction* detector is consulted after the chain when nothing
    answered or the answer was a generic ZIP container.  Detection never
    raises: a missing path yields ``""`` and an unknown file yields
    ``application/octet-stream``.

    Typical usage::

        sniffer = MimeSniffer()
        sniffer.detect("/srv/files/report.docx")
    """

    def __init__(
        self,
        detectors: list[Detector] | None = None,
        correction: Detector | None = None,
    ) -> None:
        if detectors is None:
            detectors = [MagicDetector(), PlatformDetector()]
        self.detectors = detectors
        self.correction = correction if correction is not None else ExtensionDetector()

    def detect(self, file_path: str | os.PathLike) -> str:
        path = Path(file_path)
        if not path.exists():
            return ""

        result: str | None = None
        source = ""
        for detector in self.detectors:
            result = self._run(detector, path)
            if result:
                source = detector.name
                break

        if not result or result == ZIP_MEDIA_TYPE:
            corrected = self._run(self.correction, path)
            if corrected:
                result = corrected
                source = self.correction.name

        if not result:
            result = DEFAULT_MEDIA_TYPE
            source = "default"

        logger.debug("mime_detected", path=str(path), media_type=result, source=source)
        return result

    @staticmethod
    def _run(detector: Detector, path: Path) -> str | None:
        try:
            return detector.detect(path)
        except Exception as exc:
            logger.warning(
                "mime_detector_failed",
                detector=detector.name,
                path=str(path),
                error=str(exc),
                exc_info=True,
            )
            return None
