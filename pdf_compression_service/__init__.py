"""HTTP service that shrinks PDFs by downscaling and re-encoding their embedded images."""

from .app import create_app
from .document import compress_pdf
from .images import normalize_image, target_size

__version__ = "1.0.0"

__all__ = ["create_app", "compress_pdf", "normalize_image", "target_size"]
