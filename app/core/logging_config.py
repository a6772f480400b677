# app/core/logging_config.py
"""
Logging configuration for the crowdfunding backend.
Console output plus rotating log files, with a dedicated file for chain events.
"""
import logging
import logging.handlers
import sys
from pathlib import Path


# Create logs directory
LOGS_DIR = Path(__file__).parent.parent.parent / "logs"

# Log files
ERROR_LOG_FILE = LOGS_DIR / "error.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug.log"
CHAIN_EVENTS_LOG_FILE = LOGS_DIR / "chain_events.log"

CHAIN_LOGGER_NAME = "crowdfund.chain"


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        # Work on a copy so file handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{log_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def setup_logging(app_name: str = "crowdfund", level: str = "INFO"):
    """
    Setup logging with console and file handlers.

    Creates three log files:
    - error.log: Only ERROR and CRITICAL messages
    - debug.log: All DEBUG and above messages
    - chain_events.log: Chain gateway and reconciler activity
    """
    LOGS_DIR.mkdir(exist_ok=True)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # ═══════════════════════════════════════════════════════════
    # Console Handler - with colors
    # ═══════════════════════════════════════════════════════════
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredFormatter('%(levelname)s | %(name)s | %(message)s'))
    root_logger.addHandler(console_handler)

    # ═══════════════════════════════════════════════════════════
    # ERROR Log File - Rotating, only errors
    # ═══════════════════════════════════════════════════════════
    error_handler = logging.handlers.RotatingFileHandler(
        ERROR_LOG_FILE,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(filename)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(error_handler)

    # ═══════════════════════════════════════════════════════════
    # DEBUG Log File - Rotating, all messages
    # ═══════════════════════════════════════════════════════════
    debug_handler = logging.handlers.RotatingFileHandler(
        DEBUG_LOG_FILE,
        maxBytes=20 * 1024 * 1024,  # 20 MB
        backupCount=5,
        encoding='utf-8'
    )
    debug_handler.setLevel(logging.DEBUG)
    debug_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)-30s | %(filename)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(debug_handler)

    # ═══════════════════════════════════════════════════════════
    # Chain Events Log File - gateway + reconciler
    # ═══════════════════════════════════════════════════════════
    chain_handler = logging.handlers.RotatingFileHandler(
        CHAIN_EVENTS_LOG_FILE,
        maxBytes=20 * 1024 * 1024,  # 20 MB
        backupCount=5,
        encoding='utf-8'
    )
    chain_handler.setLevel(logging.DEBUG)
    chain_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    # Only attach to chain loggers
    chain_logger = get_chain_logger()
    chain_logger.addHandler(chain_handler)
    chain_logger.setLevel(logging.DEBUG)
    chain_logger.propagate = True  # Also send to root handlers

    # Quiet down chatty libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"{'='*60}")
    logger.info(f"Logging initialized for {app_name}")
    logger.info(f"Log directory: {LOGS_DIR}")
    logger.info(f"Chain events log: {CHAIN_EVENTS_LOG_FILE}")
    logger.info(f"{'='*60}")

    return root_logger


def get_chain_logger(suffix: str = None) -> logging.Logger:
    """Get a logger under the chain events tree"""
    name = f"{CHAIN_LOGGER_NAME}.{suffix}" if suffix else CHAIN_LOGGER_NAME
    return logging.getLogger(name)
