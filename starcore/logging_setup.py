import os
import sys
import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_configured = False


def setup_logging(log_path=None, level=None):
    """Configures the root logger once: stdout plus an optional log file.

    Level comes from ``level``, then STARCORE_LOG_LEVEL, then INFO.
    """
    global _configured
    if _configured:
        return
    level_name = (level or os.getenv("STARCORE_LOG_LEVEL") or "INFO").upper()
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_path:
        os.makedirs(os.path.dirname(os.path.abspath(log_path)), exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    _configured = True
