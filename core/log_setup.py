import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level=logging.INFO, log_dir: Optional[Path] = None):
    """Configure root logging: console always, a dated file when log_dir is given."""
    handlers = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / f"monopixel_{datetime.now().strftime('%Y-%m-%d')}.log")
        )

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    return logging.getLogger("monopixel")
