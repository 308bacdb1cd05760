# restaurant_app/deps.py
from __future__ import annotations

import logging

from fastapi import HTTPException

from restaurant_app.core.errors import EngineError, StorageError

logger = logging.getLogger(__name__)


def http_error(exc: EngineError) -> HTTPException:
    """Translate a domain error into the structured rejection sent to clients."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure surfaced to client: %s", exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
