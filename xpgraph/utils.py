import logging

from .settings import settings


# -------- logging setup --------

def setup_logger(name, level_str=settings.LOG_LEVEL):
    """
    Sets up a module logger with a console stream handler.
    Propagation stays ON so uvicorn/pytest root handlers still see the records.
    """
    log_level = getattr(logging, str(level_str).upper(), logging.INFO)
    formatter = logging.Formatter('%(asctime)s - %(levelname)5s | %(name)s | %(message)s')

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Avoid duplicate console handlers on repeated imports
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        logger.addHandler(handler)

    logger.propagate = True
    return logger


def truncate(text, limit: int = 80) -> str:
    """Shorten caller-supplied text for log lines."""
    s = str(text).replace("\n", " ")
    return s if len(s) <= limit else s[: limit - 3] + "..."
