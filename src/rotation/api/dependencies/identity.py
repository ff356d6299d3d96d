"""Caller identity dependencies.

Identity is asserted by the upstream gateway through headers; this service
only checks that the headers are present and well-formed.
"""

import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.rotation.core.config import get_settings
from src.rotation.core.logging import bind_developer_context


async def get_developer_id(
    x_developer_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Resolve the acting developer from the X-Developer-ID header."""
    if not x_developer_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Developer-ID header required",
        )
    try:
        developer_id = UUID(x_developer_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Developer-ID header",
        ) from e
    bind_developer_context(developer_id)
    return developer_id


async def verify_cron_secret(
    x_cron_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Guard sweep triggers with the shared cron secret when one is configured."""
    expected = get_settings().cron_secret
    if expected is None:
        return
    if x_cron_secret is None or not secrets.compare_digest(x_cron_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing cron secret",
        )


DeveloperId = Annotated[UUID, Depends(get_developer_id)]
CronAuthorized = Annotated[None, Depends(verify_cron_secret)]
