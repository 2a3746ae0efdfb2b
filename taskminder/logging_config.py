import logging
import sys

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Attach a stderr handler to the ``taskminder`` logger.

    Safe to call more than once (uvicorn reload, tests): an existing handler is
    reused and only the level is updated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("taskminder")
    logger.setLevel(level)

    if not any(getattr(h, "_taskminder", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._taskminder = True
        logger.addHandler(handler)

    # APScheduler reports job executions at INFO; keep it to warnings.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
