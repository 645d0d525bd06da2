import logging

from .app import create_app

logger = logging.getLogger("pdf_compression_service")


def main() -> None:
    app = create_app()
    logger.info("Starting PDF Compression Service")
    # For production, run behind a WSGI server (gunicorn/waitress) instead
    app.run(host=app.config["HOST"], port=int(app.config["PORT"]), debug=False)


if __name__ == "__main__":
    main()
