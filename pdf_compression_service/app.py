import logging
import os
from typing import Any, Mapping, Optional

from flask import Blueprint, Flask, Response, current_app, render_template_string, request

from .config import Config, resolve_resample_filter
from .document import compress_pdf
from .images import NormalizerSettings
from .logs import read_log, setup_logging

logger = logging.getLogger(__name__)

bp = Blueprint("compression", __name__)

# -----------------------------
# Pages
# -----------------------------

INDEX_PAGE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>PDF Compression Service</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 40px; }
    form { border: 2px dashed #999; border-radius: 8px; padding: 30px; max-width: 480px; }
  </style>
</head>
<body>
  <h1>PDF Compression Service</h1>
  <p>Images larger than {{ max_width }}x{{ max_height }} are scaled down; every image is re-encoded as JPEG.</p>
  <form action="{{ url_for('compression.compress_pdf_file') }}" method="post" enctype="multipart/form-data">
    <input type="file" name="file" accept=".pdf" required>
    <button type="submit">Compress</button>
  </form>
  <p><a href="{{ url_for('compression.logs') }}">Service logs</a></p>
</body>
</html>
"""

LOGS_PAGE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>PDF Compression Service Logs</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 20px; }
    pre { background: #1e1e1e; color: #cfcfcf; padding: 15px; border-radius: 6px; overflow-x: auto; }
    #error-log { color: #ff8a80; }
  </style>
</head>
<body>
  <h1>Output log</h1>
  <pre id="output-log">{{ output_log }}</pre>
  <h1>Error log</h1>
  <pre id="error-log">{{ error_log }}</pre>
</body>
</html>
"""


def normalizer_settings(config: Mapping[str, Any]) -> NormalizerSettings:
    return NormalizerSettings(
        max_width=int(config["MAX_IMAGE_WIDTH"]),
        max_height=int(config["MAX_IMAGE_HEIGHT"]),
        jpeg_quality=int(config["JPEG_QUALITY"]),
        resample=resolve_resample_filter(config["RESAMPLE_FILTER"]),
    )


# -----------------------------
# Routes
# -----------------------------
@bp.route("/")
def index():
    return render_template_string(
        INDEX_PAGE,
        max_width=current_app.config["MAX_IMAGE_WIDTH"],
        max_height=current_app.config["MAX_IMAGE_HEIGHT"],
    )


@bp.route("/healthz")
def healthz():
    return "ok", 200


@bp.route("/compressPdf", methods=["POST"])
def compress_pdf_file():
    f = request.files.get("file")
    logger.info(f"Received request to compress PDF file '{f.filename if f else None}'")
    if f is None:
        logger.error("No file part in request")
        return "", 400

    data = f.read()
    if not data:
        logger.error("Empty or invalid file received in request")
        return "", 400

    config = current_app.config
    try:
        result = compress_pdf(
            data,
            settings=normalizer_settings(config),
            isolate_failures=bool(config["ISOLATE_IMAGE_FAILURES"]),
        )
    except Exception as e:
        logger.error(f"Error compressing PDF '{f.filename}': {e}", exc_info=True)
        return "", 500

    logger.info(
        f"Completed PDF compression request: {result.images_seen} images, "
        f"{result.images_resized} resized, {result.images_skipped} skipped"
    )
    logger.info(f"Original size: {len(data)} bytes")
    logger.info(f"Optimized size: {result.size} bytes")

    response = Response(result.data, mimetype="application/pdf")
    response.headers["Content-Disposition"] = "attachment; filename=optimized.pdf"
    response.content_length = result.size
    return response


@bp.route("/logs")
def logs():
    config = current_app.config
    return render_template_string(
        LOGS_PAGE,
        output_log=read_log(os.path.join(config["LOG_DIR"], config["OUTPUT_LOG"])),
        error_log=read_log(os.path.join(config["LOG_DIR"], config["ERROR_LOG"])),
    )


# -----------------------------
# App factory
# -----------------------------
def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Build the service. Settings come from ``Config``, then environment
    variables prefixed ``PDF_COMPRESSOR_``, then ``config``.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config.from_prefixed_env("PDF_COMPRESSOR")
    if config:
        app.config.update(config)

    # Fail at startup rather than on the first upload
    normalizer_settings(app.config)

    setup_logging(
        app.config["LOG_DIR"],
        app.config["OUTPUT_LOG"],
        app.config["ERROR_LOG"],
        to_files=bool(app.config["LOG_TO_FILES"]),
    )

    app.register_blueprint(bp)
    for rule in app.url_map.iter_rules():
        logger.info(f"{rule.rule} is mapped to {rule.endpoint}")
    return app
