"""
Page routes: home and the protected profile page.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..auth.guard import require_auth
from ..auth.session import FLASH_ERROR, ID_TOKEN, IDENTITY, SessionContext, get_session
from ..auth.utils import decode_token_without_verification
from . import templates

pages_router = APIRouter(tags=["pages"])


@pages_router.get("/", response_class=HTMLResponse)
async def home(request: Request, session: SessionContext = Depends(get_session)):
    identity = session.get(IDENTITY) or {}
    provider_name = request.app.state.default_provider

    return templates.render_home(
        is_authenticated=session.is_authenticated,
        login_url=f"/auth/signin/{provider_name}",
        name=identity.get("name"),
        flash_error=session.pull(FLASH_ERROR),
    )


@pages_router.get("/profile", response_class=HTMLResponse)
async def profile(session: SessionContext = Depends(require_auth)):
    """Display the session contents of the signed-in user."""
    session_json = json.dumps(templates.session_view(session.all()), indent=4)
    claims_json = json.dumps(decode_token_without_verification(session.get(ID_TOKEN)), indent=4)

    return templates.render_profile(session_json, claims_json)
