"""Step logs for the K-Auth flows, with secrets cut short."""
from __future__ import annotations
import json
import logging
from typing import Any


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def log_step(logger: logging.Logger, step: str, data: Any = None, level: int = logging.INFO) -> None:
    """One block per flow step: ``[K-Auth] === step ===`` then the data."""
    if not logger.isEnabledFor(level):
        return
    if isinstance(data, (dict, list)):
        data = json.dumps(data, indent=2, default=str)
    logger.log(level, "[K-Auth] === %s ===\n%s", step, data)


def truncate(secret: Any, keep: int) -> str | None:
    if not secret:
        return None
    return f"{str(secret)[:keep]}..."


def token_keys(tokens: Any) -> list[str]:
    """Log the shape of a token response, never its values."""
    return sorted(tokens) if isinstance(tokens, dict) else []
