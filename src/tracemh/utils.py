import logging

from tqdm.contrib.logging import logging_redirect_tqdm

__all__ = [
    "log",
    "log_info",
    "logger",
    "setup_logging",
]

logger = logging.getLogger("tracemh")


def setup_logging(level: int | str):
    # logging.DEBUG 10 reports every proposal and accept/reject decision
    # logging.INFO 20 reports one summary line per chain
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(name)s - %(levelname)s: %(message)s"))
    logger.addHandler(handler)


def log(level: int, msg: str, *args):
    # Keeps console output from breaking active tqdm progress bars.
    with logging_redirect_tqdm(loggers=[logger]):
        logger.log(level, msg, *args)


def log_info(msg: str, *args):
    log(logging.INFO, msg, *args)
