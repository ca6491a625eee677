import logging
import sys

ROOT_LOGGER = "poscore"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach the stdout handler to the package logger (once) and set its level."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
    root.setLevel(level.upper())
    return root


class Logger:
    """Named child of the package logger: Logger("gate") writes as poscore.gate."""

    def __init__(self, name: str = ROOT_LOGGER):
        if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
            name = f"{ROOT_LOGGER}.{name}"
        self.name = name
        self._logger = logging.getLogger(name)

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._logger.exception(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._logger.debug(msg, *args, **kwargs)
