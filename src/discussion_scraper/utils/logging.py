from __future__ import annotations
import logging
import logging.config
from pathlib import Path
from typing import Optional
import yaml

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(config_path: str = "configs/logging.yaml", log_file: Optional[str] = None) -> None:
    """Setup logging configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        # Safe fallback: console, plus the run log file when one is requested
        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        logging.basicConfig(level=logging.INFO, format=DEFAULT_FORMAT, handlers=handlers, force=True)
        return

    with path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    for handler in (cfg.get("handlers") or {}).values():
        filename = handler.get("filename")
        if filename:
            Path(filename).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(cfg)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
