import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

from inventory_engine.config import config

PACKAGE_LOGGER = 'inventory_engine'
LEDGER_LOGGER = 'stock_ledger'


class Logger:
    """Logging manager for the Inventory Forecasting Engine.

    Named loggers (api, low_stock_alert, stock_ledger) each write to their
    own rotating file. Service modules log through ``logging.getLogger(__name__)``
    and land in ``inventory_engine.log`` via the package logger.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the logger if not already initialized."""
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._formatter = logging.Formatter(self._log_config['format'])

        self.get_logger(PACKAGE_LOGGER)
        self._ledger_logger = self.get_logger(LEDGER_LOGGER)

        self._initialized = True

    @property
    def level(self):
        level_name = self._log_config['level'].upper()
        return getattr(logging, level_name, logging.INFO)

    def _file_handler(self, name):
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / f"{name}.log",
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count']
        )
        handler.setFormatter(self._formatter)
        return handler

    def get_logger(self, name):
        """Get a logger with its own rotating log file.

        Args:
            name: Logger name; also the log file name

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(self.level)

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        logger.addHandler(self._file_handler(name))
        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(self._formatter)
            logger.addHandler(console_handler)

        # Named loggers own their handlers; nothing reaches the root logger twice
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception.

        Engine errors are expected outcomes and are logged with their code
        and details only. Anything else gets the stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)
        text = f"{message}: {exception}" if message else str(exception)

        details = getattr(exception, 'details', None)
        if hasattr(exception, 'to_dict'):
            if details:
                text += f" (details: {details})"
            logger.error(text)
            return

        logger.error(text)
        logger.error(traceback.format_exc())

    def log_stock_movement(self, adjustment, source='adjust'):
        """Write one committed StockAdjustment to the stock ledger log.

        Args:
            adjustment: StockAdjustment record
            source: What produced the movement, e.g. adjust or receive
        """
        reference = ''
        if adjustment.reference_type:
            reference = f" ref={adjustment.reference_type}:{adjustment.reference_id}"

        self._ledger_logger.info(
            f"{source} component={adjustment.component_id} "
            f"type={adjustment.adjustment_type.value} qty={adjustment.quantity} "
            f"on_hand={adjustment.previous_on_hand}->{adjustment.new_on_hand} "
            f"delta={adjustment.delta:+d}{reference}"
        )

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of a batch run.

        Args:
            process_name: Name of the batch process
            additional_info: Optional run parameters, e.g. the report date

        Returns:
            Dictionary passed back to batch_end_log
        """
        batch_logger = self.get_logger(process_name)

        log_info = {
            'process_name': process_name,
            'start_time': datetime.now(),
            'additional_info': additional_info
        }

        batch_logger.info(f"Starting {process_name}" + (f" {additional_info}" if additional_info else ''))
        return log_info

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a batch run with its duration and results."""
        process_name = log_info.get('process_name', 'batch')
        batch_logger = self.get_logger(process_name)
        end_time = datetime.now()
        duration = end_time - log_info.get('start_time', end_time)

        outcome = 'Completed' if success else 'Failed'
        level = logging.INFO if success else logging.ERROR
        batch_logger.log(level, f"{outcome} {process_name} in {duration}")

        if result_info:
            batch_logger.log(level, f"Results: {result_info}")


# Global logger instance
logger = Logger()


def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)


def log_exception(logger_name, exception, message=None):
    """Log an exception, with a stack trace for unexpected errors."""
    logger.log_exception(logger_name, exception, message)


def log_stock_movement(adjustment, source='adjust'):
    """Record a committed stock movement in the stock ledger log."""
    logger.log_stock_movement(adjustment, source)
