"""
Logging configuration for PyVDYP.

All modules obtain their logger through get_logger(__name__) so that the
whole package hangs off the "pyvdyp" logger and can be configured in one
place with setup_logging().
"""
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Union

ROOT_LOGGER_NAME = "pyvdyp"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure the package logger.

    Existing handlers on the package logger are replaced, so calling this
    more than once does not duplicate output.

    Args:
        level: Logging level name or number
        log_file: Optional file to write log records to
        console: Whether to log to stderr
        fmt: Log record format

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the package hierarchy.

    Args:
        name: Usually the calling module's __name__

    Returns:
        Logger named "pyvdyp.<module>" (or the name itself if already inside it)
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_stage(logger: logging.Logger, polygon_id: Any, step: Any) -> None:
    """Log the start of a forward processing stage."""
    logger.debug("Polygon %s: executing %s", polygon_id, getattr(step, "name", step))


def log_species_skipped(
    logger: logging.Logger, polygon_id: Any, species: Any, reason: Any
) -> None:
    """Log a species whose value could not be estimated."""
    logger.warning("Polygon %s: skipping species %s: %s", polygon_id, species, reason)
