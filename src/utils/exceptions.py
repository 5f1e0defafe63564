class FileDeliveryError(Exception):
    """Base exception for the file delivery service."""


class FileMissingError(FileDeliveryError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class FileNotReadableError(FileDeliveryError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File {path} is not readable")


class PathOutsideRootError(FileDeliveryError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path escapes the storage root: {path}")


class FileTooLargeError(FileDeliveryError):
    def __init__(self, path: str, size: int, ceiling: int):
        self.path = path
        self.size = size
        self.ceiling = ceiling
        super().__init__(
            f"File {path} ({size} bytes) is too large for in-process transfer "
            f"under a {ceiling} byte memory ceiling"
        )


class TransferFailedError(FileDeliveryError):
    def __init__(self, path: str, detail: str = ""):
        self.path = path
        super().__init__(f"Transfer of {path} failed: {detail}" if detail else f"Transfer of {path} failed")


class DeclaredSizeMismatchError(FileDeliveryError):
    def __init__(self, path: str, declared: int, actual: int):
        self.path = path
        self.declared = declared
        self.actual = actual
        super().__init__(f"Declared size {declared} does not match {path} ({actual} bytes)")
