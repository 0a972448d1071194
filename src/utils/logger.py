# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the retrieval engine

Entry points (CLI scripts, services embedding the engine) call setup_logging()
once; library modules only ever do logger = logging.getLogger(__name__) and
never configure handlers themselves.

Examples:
# In a script
    from src.utils.logger import setup_logging
    setup_logging(level="DEBUG", log_file="logs/index_materials.log")

    # In any module
    from src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Strategy finished")

"""
# Standard library
import logging
import sys
from pathlib import Path
from typing import Optional, Union

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
NOISY_LOGGERS = ('sentence_transformers', 'faiss', 'urllib3', 'filelock', 'huggingface_hub')

_logging_configured = False


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
) -> None:
    """
    Configure console (and optional file) logging for the process.

    Only the first call takes effect.

    Args:
        level: Logging level as int or name ("INFO", "DEBUG", ...)
        log_file: Optional log file; parent directories are created
        format_string: Log record format
    """
    global _logging_configured

    if _logging_configured:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    formatter = logging.Formatter(format_string)
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
