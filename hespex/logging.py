import logging

__all__ = ["get_logger", "set_level"]

_FORMAT = '%(asctime)s %(levelname)s %(name)s %(lineno)s: %(message)s'


def get_logger(name, level=logging.WARNING):
    """
    Return a configured logger instance.

    Calling this more than once for the same name reuses the existing handler,
    so stage diagnostics are printed once. The handler passes on everything the
    logger lets through, so changing the logger level (see `set_level`) is enough
    to show the debug progress messages.

    Parameters
    ----------
    name : `str`
        Name of the logger
    level : `int` or level, optional
        Level of the logger e.g `logging.DEBUG` or 'DEBUG'

    Returns
    -------
    `logging.Logger`
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(_FORMAT, datefmt='%Y-%m-%dT%H:%M:%SZ')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def set_level(level, name="hespex"):
    """
    Set the level of every hespex logger created so far.

    Parameters
    ----------
    level : `int` or level
        E.g. `logging.DEBUG` or 'DEBUG' to see the progress of each stage.
    name : `str`, optional
        Only loggers named `name` or ``name.<something>`` are changed.

    Examples
    --------
    >>> from hespex.logging import set_level
    >>> set_level('DEBUG')
    """
    for logger_name in list(logging.root.manager.loggerDict):
        if logger_name == name or logger_name.startswith(f"{name}."):
            logging.getLogger(logger_name).setLevel(level)
