"""
utils.py

Logging setup and two guarded helpers used by the TIN, model and grid code.

- `configure_logging(level)` : attach one console handler to the package logger
- `safe_log_exception(msg, exc, **ctx)` : log a failure with its context
- `safe_build_kdtree(points, name)` : vertex KD-tree, or None for empty input

"""

from typing import Any, Optional
import sys
import logging

import numpy as np
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the `tinshade` package logger.

    Only the first call adds a stdout handler; later calls just change the level.
    """
    log = logging.getLogger('tinshade')
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(level)
    logging.getLogger('matplotlib').setLevel(logging.WARNING)
    return log


def _format_context(ctx):
    return ', '.join(f'{key}={value!r}' for key, value in sorted(ctx.items()))


def safe_log_exception(msg: str, exc: Exception, **ctx: Any) -> None:
    """Log ``exc`` with a traceback and the keyword context (task, tin, ...).

    A failure inside logging itself is reported on stderr so that the
    caller can still re-raise the original error.
    """
    text = f'{msg}: {exc}'
    if ctx:
        text = f'{text} [{_format_context(ctx)}]'
    try:
        logger.exception(text)
    except Exception as log_exc:
        try:
            sys.stderr.write(f'LOGGING FAILURE: {text} ({log_exc})\n')
        except OSError:
            pass


def safe_build_kdtree(points: Any, name: str = 'KDTree') -> Optional[cKDTree]:
    """Return a `cKDTree` over ``points`` (n x 2), or None.

    None is returned for missing or empty input and for coordinates that
    cannot be converted to a float array; other errors propagate.
    """
    if points is None:
        logger.debug('%s: no points given', name)
        return None
    try:
        pts = np.asarray(points, dtype=float)
    except (TypeError, ValueError):
        logger.exception('%s: points are not numeric', name)
        return None
    if pts.size == 0:
        logger.debug('%s: empty point set', name)
        return None
    return cKDTree(pts)
