# receipt_hub/routers/deps.py
"""
Shared router dependencies: acting user, service wiring, error translation.

Authentication happens upstream; the gateway forwards the user as
X-User-Id / X-User-Name headers.
"""
from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional
import logging

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.database import get_session
from receipt_hub.services.errors import NotFoundError, ReceiptError
from receipt_hub.services.notifications import NotificationService
from receipt_hub.services.receipt_checks import ReceiptCheckService
from receipt_hub.services.receipt_imports import ReceiptImportService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    name: str


async def get_current_user(
    user_id: int = Header(..., alias="X-User-Id"),
    user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> CurrentUser:
    return CurrentUser(id=user_id, name=user_name or f"user-{user_id}")


async def get_import_service(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> ReceiptImportService:
    push = getattr(request.app.state, "push_client", None)
    return ReceiptImportService(db, notifications=NotificationService(db, push))


async def get_check_service(db: AsyncSession = Depends(get_session)) -> ReceiptCheckService:
    return ReceiptCheckService(db)


@contextmanager
def http_errors() -> Iterator[None]:
    """Map domain and constraint errors to HTTP responses."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(404, detail=str(e))
    except ReceiptError as e:
        logger.warning("Rejected: %s", e)
        raise HTTPException(400, detail=str(e))
    except IntegrityError as e:
        logger.warning("Constraint violation: %s", e.orig)
        raise HTTPException(409, detail="Conflicting receipt data")
