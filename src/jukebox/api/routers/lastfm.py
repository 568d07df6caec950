"""Last.fm account link endpoints.

Hey future me - the callback is hit by the USER'S BROWSER coming back from last.fm, not
by our UI code. So it answers with a redirect to the settings page (with ?lastfm=... so
the page can show a toast) instead of JSON.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from jukebox.api.dependencies import get_app_settings, get_lastfm_account
from jukebox.api.schemas import (
    LastfmAuthUrlResponse,
    LastfmStatusResponse,
    SuccessResponse,
)
from jukebox.application.services import LastfmAccountService
from jukebox.config import Settings
from jukebox.domain.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def lastfm_status(
    account: LastfmAccountService = Depends(get_lastfm_account),
) -> LastfmStatusResponse:
    return LastfmStatusResponse(**await account.status())


@router.get("/auth-url")
async def lastfm_auth_url(
    account: LastfmAccountService = Depends(get_lastfm_account),
    settings: Settings = Depends(get_app_settings),
) -> LastfmAuthUrlResponse:
    """Where to send the user to grant scrobbling access."""
    return LastfmAuthUrlResponse(
        auth_url=account.auth_url(settings.lastfm.callback_url)
    )


@router.get("/callback")
async def lastfm_callback(
    token: str = Query(..., min_length=1),
    account: LastfmAccountService = Depends(get_lastfm_account),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Finish the web auth flow and bounce back to the UI."""
    target = settings.lastfm.post_auth_redirect
    try:
        await account.complete(token)
    except (ConfigurationError, ExternalServiceError) as e:
        logger.warning("Last.fm auth failed: %s", e.message)
        return RedirectResponse(url=f"{target}?lastfm=error", status_code=303)
    return RedirectResponse(url=f"{target}?lastfm=connected", status_code=303)


@router.post("/disconnect")
async def lastfm_disconnect(
    account: LastfmAccountService = Depends(get_lastfm_account),
) -> SuccessResponse:
    await account.disconnect()
    return SuccessResponse()
