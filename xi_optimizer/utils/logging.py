import sys
from pathlib import Path
from loguru import logger
from xi_optimizer.utils.config import config


def setup_logging():
    """Configure logging for the application"""

    # Remove default logger
    logger.remove()

    # Console logging
    if config.logging.console_enabled:
        logger.add(
            sys.stderr,
            format=config.logging.format,
            level=config.logging.level,
            colorize=True,
        )

    # File logging
    if config.logging.file_enabled:
        Path("logs").mkdir(exist_ok=True)

        logger.add(
            config.logging.file_path,
            format=config.logging.format,
            level=config.logging.level,
            rotation=config.logging.rotation,
            retention=config.logging.retention,
            compression="zip",
            enqueue=True
        )

    # Custom level for optimizer outcomes
    logger.level("DECISION", no=35, color="<yellow>")

    return logger


# Initialize logger
app_logger = setup_logging()


class LogContext:
    """Context manager for structured logging"""

    def __init__(self, context_name: str, **kwargs):
        self.context_name = context_name
        self.context_data = kwargs

    def __enter__(self):
        app_logger.info(f"Starting {self.context_name}", **self.context_data)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            app_logger.error(
                f"Error in {self.context_name}: {exc_val}",
                **self.context_data
            )
        else:
            app_logger.info(f"Completed {self.context_name}", **self.context_data)


def log_decision(decision_type: str, **details):
    """Log an optimizer outcome"""
    app_logger.log("DECISION", f"{decision_type}: {details}")
