from src.mime.detectors import Detector, ExtensionDetector, MagicDetector, PlatformDetector
from src.mime.sniffer import DEFAULT_MEDIA_TYPE, MimeSniffer

__all__ = [
    "DEFAULT_MEDIA_TYPE",
    "Detector",
    "ExtensionDetector",
    "MagicDetector",
    "MimeSniffer",
    "PlatformDetector",
]
