"""Logging setup for CLI"""

import logging
import os

import settings


def setup_logging(debug: bool = False) -> None:
    """
    Configure the root logger

    Log output goes to stderr so stdout only carries the token JSON.

    Args:
        debug: Log everything at DEBUG level and append to the debug log file
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if debug:
        root_logger.setLevel(logging.DEBUG)

        log_file = os.path.abspath(settings.DEBUG_LOG_FILE)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        logging.getLogger(__name__).debug(f"Debug logging enabled - appending to {log_file}")
    else:
        level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.WARNING)
        root_logger.setLevel(level)

    # httpx logs every request at INFO
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
