import logging
import logging.handlers
import os
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE_NAME = "scenario_fairness.log"


def resolve_log_level(log_level: str = "INFO") -> int:
    """Map a level name to a logging constant.

    ``DEBUG_FAIRNESS=1`` forces DEBUG so the placement passes narrate
    every repair they apply.
    """
    if os.environ.get("DEBUG_FAIRNESS") == "1":
        return logging.DEBUG
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> None:
    """Configure logging for scenario generation and fairness reports."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return  # Already configured

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    level = resolve_log_level(log_level)
    root_logger.setLevel(level)

    # Rotating file keeps full DEBUG detail (5MB max, keep 3 backups)
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE_NAME, maxBytes=5 * 1024 * 1024, backupCount=3
    )
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).info(
        "Logging initialized (level=%s, dir=%s)", logging.getLevelName(level), log_dir
    )
