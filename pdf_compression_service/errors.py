from typing import Optional


class CompressionError(Exception):
    """Base class for failures while compressing an uploaded PDF."""


class InvalidDocumentError(CompressionError):
    pass


class ImageProcessingError(CompressionError):
    """Decoding, resampling or re-encoding of a single image failed."""

    def __init__(self, page_number: int, name: str, cause: Optional[BaseException] = None):
        self.page_number = page_number
        self.name = name
        self.cause = cause
        message = f"Image {name} on page {page_number} could not be recompressed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
