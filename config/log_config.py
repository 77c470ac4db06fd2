import logging
import os
from datetime import datetime

from rich.logging import RichHandler

LOGGER_NAME = "linguaharu"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logger(name=LOGGER_NAME, level=logging.INFO):
    """Create the console logger shared by the whole application"""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)

    return logger


class FileLogger:
    """Attach one log file per processed document to the application logger"""

    def __init__(self, logger):
        self.logger = logger
        self.current_log_file = None
        self._handler = None

    def create_file_log(self, file_name, log_dir="log"):
        self.close()
        os.makedirs(log_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_name = os.path.basename(file_name).replace(" ", "_")
        log_path = os.path.join(log_dir, f"{timestamp}_{safe_name}.log")

        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(handler)

        self._handler = handler
        self.current_log_file = log_path
        return log_path

    def close(self):
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None


app_logger = setup_logger()
file_logger = FileLogger(app_logger)
