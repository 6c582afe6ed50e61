import logging
import os
import multiprocessing
from datetime import datetime

from framestats.constants import DEFAULT_LOG_DIR

LOGGER_NAME = "framestats"


def configure_logging(log_dir: str = DEFAULT_LOG_DIR, file_logging: bool = True):
    """Configure the package logger once, at application startup"""
    logger = logging.getLogger(LOGGER_NAME)

    # Only configure if not already configured
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            "%(asctime)s - %(threadName)s - %(levelname)s - %(message)s"
        )

        # Only create a file handler in the main process
        if file_logging and multiprocessing.current_process().name == "MainProcess":
            if not os.path.exists(log_dir):
                os.makedirs(log_dir)

            # Format timestamp as readable datetime (e.g., 2023-05-25_14-30-45)
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

            file_handler = logging.FileHandler(os.path.join(log_dir, f"{timestamp}.log"))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        # Always add the stream handler for console output
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    return logger
