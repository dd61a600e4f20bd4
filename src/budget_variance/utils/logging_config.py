"""
Logging configuration for the budget variance engine.

Besides the usual console and file handlers, problems found in the input
data (duplicate lines, unknown or cyclic parents, off-period lines) are
logged under a dedicated ``budget_variance.data_quality`` logger. Those
records can be routed to their own file and are collected for the run
summary, independently of the console level.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional
import colorama
from colorama import Fore, Style

DATA_QUALITY_LOGGER = "budget_variance.data_quality"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
DATA_QUALITY_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

NOISY_LOGGERS = ('openpyxl', 'xlsxwriter', 'pandas', 'numexpr')


def is_data_quality_record(record: logging.LogRecord) -> bool:
    return record.name == DATA_QUALITY_LOGGER or record.name.startswith(DATA_QUALITY_LOGGER + ".")


class ColoredFormatter(logging.Formatter):
    """Colored console formatter; data-quality records are tagged in magenta."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        # File handlers see the same record, so colour a copy
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{log_color}{record.levelname}{Style.RESET_ALL}"
        if is_data_quality_record(record):
            record.msg = f"{Fore.MAGENTA}[data quality]{Style.RESET_ALL} {record.msg}"
        return super().format(record)


class DataQualityFilter(logging.Filter):
    """Pass only records logged under the data-quality logger."""

    def filter(self, record):
        return is_data_quality_record(record)


class DataQualityRecorder(logging.Handler):
    """Keep data-quality messages of the current run in memory."""

    def __init__(self, level=logging.WARNING):
        super().__init__(level)
        self.addFilter(DataQualityFilter())
        self.messages: List[str] = []

    def emit(self, record):
        self.messages.append(record.getMessage())

    def clear(self) -> None:
        self.messages = []


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None,
                  data_quality_file: Optional[str] = None) -> DataQualityRecorder:
    """
    Setup logging configuration.

    Args:
        log_level: Console and file level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file for all records
        data_quality_file: Optional log file for data-quality records only

    Returns:
        The recorder collecting this run's data-quality warnings
    """
    colorama.init()
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        root_logger.addHandler(_file_handler(
            log_file, numeric_level, LOG_FORMAT + ' - [%(filename)s:%(lineno)d]'))

    if data_quality_file:
        handler = _file_handler(data_quality_file, logging.WARNING, DATA_QUALITY_FORMAT)
        handler.addFilter(DataQualityFilter())
        root_logger.addHandler(handler)

    recorder = DataQualityRecorder()
    root_logger.addHandler(recorder)

    # Data-quality warnings are kept even when the console is quieter
    logging.getLogger(DATA_QUALITY_LOGGER).setLevel(min(numeric_level, logging.WARNING))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured - Level: {log_level}")
    if log_file:
        logger.info(f"Log file: {log_file}")
    if data_quality_file:
        logger.info(f"Data quality log: {data_quality_file}")
    return recorder


def _file_handler(path: str, level: int, fmt: str) -> logging.FileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode='a')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler
