import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("pdf_compression_service")


def setup_logging(log_dir: str, output_log: str, error_log: str, to_files: bool = True) -> None:
    """
    Console logging plus two files in ``log_dir``: everything from INFO up
    goes to ``output_log``, errors additionally go to ``error_log``.
    Calling it again with the same paths does not add duplicate handlers.
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logger.setLevel(logging.INFO)
    if not to_files:
        return

    os.makedirs(log_dir, exist_ok=True)
    existing = {
        getattr(h, "baseFilename", None) for h in logger.handlers if isinstance(h, logging.FileHandler)
    }
    formatter = logging.Formatter(LOG_FORMAT)
    for filename, level in ((output_log, logging.INFO), (error_log, logging.ERROR)):
        path = os.path.abspath(os.path.join(log_dir, filename))
        if path in existing:
            continue
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def read_log(path: str) -> str:
    """Full text of a log file; a log that has not been written yet reads as empty."""
    if not os.path.exists(path):
        return ""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()
