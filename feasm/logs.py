import logging
from typing import Iterable, Optional, TypeVar

from tqdm import tqdm

from . import logger, formatter

_T = TypeVar('_T')
_progress = False


class TqdmLoggingHandler(logging.Handler):
    """Log handler writing through `tqdm.write`, so that records do not break
    an active progress bar."""
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)
        self.setFormatter(formatter)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg)
            self.flush()
        except Exception:
            self.handleError(record)


def enable_progress():
    """Show progress bars over assembly items and route the package logger
    through tqdm while they are active."""
    global _progress
    _progress = True
    for h in list(logger.handlers):
        if not isinstance(h, TqdmLoggingHandler):
            logger.removeHandler(h)
    if not any(isinstance(h, TqdmLoggingHandler) for h in logger.handlers):
        logger.addHandler(TqdmLoggingHandler())


def disable_progress():
    global _progress
    _progress = False
    from . import handler
    for h in list(logger.handlers):
        if isinstance(h, TqdmLoggingHandler):
            logger.removeHandler(h)
    if handler not in logger.handlers:
        logger.addHandler(handler)


def progress_enabled() -> bool:
    return _progress


def progress(iterable: Iterable[_T], total: Optional[int]=None, desc: Optional[str]=None) -> Iterable[_T]:
    """Wrap `iterable` in a tqdm bar when progress output is enabled."""
    if not _progress:
        return iterable
    return tqdm(iterable, total=total, desc=desc, leave=False)
