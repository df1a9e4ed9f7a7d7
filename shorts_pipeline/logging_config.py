import logging
import sys

from shorts_pipeline.config import DEBUG_MODE, LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    """
    Console logging for the API process and the cron script.
    Safe to call more than once.
    """
    root = logging.getLogger()
    if DEBUG_MODE:
        level = "DEBUG"
    root.setLevel(level or LOG_LEVEL)

    if not any(getattr(h, "_shorts_pipeline", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        handler._shorts_pipeline = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # noisy third-party loggers
    for lib in ("httpx", "httpcore", "botocore", "boto3", "urllib3", "googleapiclient"):
        logging.getLogger(lib).setLevel(logging.WARNING)
