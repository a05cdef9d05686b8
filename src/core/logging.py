import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

# third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure the root logger once for the process.

    debug=True forces DEBUG for the engine's own modules only, so match
    and sort traces show up without SQL echo.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if debug:
        logging.getLogger("src").setLevel(logging.DEBUG)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
