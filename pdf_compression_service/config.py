from PIL import Image

# Resampling filters accepted for RESAMPLE_FILTER
RESAMPLE_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


class Config:
    # 600 MB hard cap for uploads (server-side)
    MAX_CONTENT_LENGTH = 600 * 1024 * 1024

    MAX_IMAGE_WIDTH = 1000
    MAX_IMAGE_HEIGHT = 1000
    # Pillow's own default; pinned so output sizes are reproducible
    JPEG_QUALITY = 75
    RESAMPLE_FILTER = "bilinear"
    ISOLATE_IMAGE_FAILURES = False

    LOG_DIR = "."
    OUTPUT_LOG = "pdf-compression-service-output.log"
    ERROR_LOG = "pdf-compression-service-error.log"
    LOG_TO_FILES = True

    HOST = "0.0.0.0"
    PORT = 5001


def resolve_resample_filter(name: str) -> Image.Resampling:
    try:
        return RESAMPLE_FILTERS[str(name).lower()]
    except KeyError:
        raise ValueError(
            f"Unknown resample filter {name!r}; expected one of {', '.join(sorted(RESAMPLE_FILTERS))}"
        ) from None
