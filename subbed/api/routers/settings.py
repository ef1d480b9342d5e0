"""User settings endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from subbed.api.dependencies import get_settings_store
from subbed.api.models.requests import SettingsResponse
from subbed.storage.base import SettingsStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get(
    "",
    response_model=SettingsResponse,
    summary="Get settings",
    operation_id="get_settings",
)
async def read_settings(
    store: SettingsStore = Depends(get_settings_store),
) -> SettingsResponse:
    """Return the stored settings merged over the defaults."""
    return SettingsResponse(settings=await store.read())


@router.post(
    "",
    response_model=SettingsResponse,
    summary="Update settings",
    description="""
    Merge a partial settings object over the current settings.

    Unknown keys are ignored. If any recognized field is invalid the whole
    update is rejected with 422 and nothing is written.
    """,
    operation_id="update_settings",
    responses={
        200: {"description": "Settings after the update"},
        422: {"description": "One or more fields are invalid"},
    },
)
async def update_settings(
    payload: dict[str, Any] = Body(..., examples=[{"per_page": 40, "sortOrder": "oldest"}]),
    store: SettingsStore = Depends(get_settings_store),
) -> SettingsResponse:
    """Apply a partial settings update.

    Args:
        payload: Partial settings object
        store: Settings store dependency

    Returns:
        SettingsResponse with the merged settings
    """
    settings = await store.write(payload)
    logger.info("Settings updated", extra={"fields": sorted(payload)})
    return SettingsResponse(settings=settings)
