# study_ai/log.py
# One stream handler for the whole service; modules use logging.getLogger(__name__).

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    root.setLevel(resolved)
    if not any(getattr(h, "_study_ai", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._study_ai = True
        root.addHandler(handler)
    # requests/urllib3 are chatty at DEBUG and would echo query strings that carry API keys
    logging.getLogger("urllib3").setLevel(logging.WARNING)
