# -*- coding: utf-8 -*-
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(settings) -> Optional[Path]:
    """Configure root logging: console always, rotating file under LOG_DIR when set."""
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    fmt = logging.Formatter(_FORMAT)

    logger = logging.getLogger()  # root
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        logger.addHandler(console)

    log_path = None
    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "ledger_sync.log"
        # avoid duplicate handlers on reload
        if not any(getattr(h, "baseFilename", "").endswith("ledger_sync.log") for h in logger.handlers):
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(fmt)
            logger.addHandler(file_handler)

    # uvicorn installs its own handlers; keep levels aligned with ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        logging.getLogger(name).setLevel(level)

    return log_path
