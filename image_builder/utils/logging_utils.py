import logging

from colorama import Fore, Style

from ..configuration import LoggingConfig

LEVEL_COLORS = {
    logging.DEBUG: Fore.WHITE,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED,
}

TRACE_LOGLEVEL = 5
logging.addLevelName(TRACE_LOGLEVEL, "TRACE")
LEVEL_COLORS[TRACE_LOGLEVEL] = Fore.MAGENTA


class LevelColorFormatter(logging.Formatter):
    """
    Colors the whole log line according to the record's level.
    """

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno, Fore.RESET)

        log_line = super().format(record)
        return f"{color}{log_line}{Style.RESET_ALL}"


class MyLogger(logging.Logger):
    def __init__(self, name, level=logging.NOTSET):
        super().__init__(name, level)

    def trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE_LOGLEVEL):
            self._log(TRACE_LOGLEVEL, msg, args, **kwargs)


logging.setLoggerClass(MyLogger)


def init_logger(logging_config: LoggingConfig, name="image-builder"):
    logger = get_logger(name)
    logger.setLevel(logging.getLevelNamesMapping()[logging_config.level.upper()])

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    formatter_args = {
        'fmt': "{asctime:^19} | {levelname:^7.7} | {message}",
        'style': "{",
        'datefmt': "%Y-%m-%d %H:%M:%S"
    }

    console_handler.setFormatter(LevelColorFormatter(**formatter_args))
    logger.addHandler(console_handler)

    file_config = logging_config.file
    if file_config:
        file_handler = logging.FileHandler(file_config.path, mode='a')
        file_handler.setFormatter(logging.Formatter(**formatter_args,))
        logger.addHandler(file_handler)


def get_logger(name="image-builder") -> MyLogger:
    """
    Returns a logger instance configured for the given name.
    """
    logger = logging.getLogger(name)
    logger.propagate = False

    return logger
