"""
HTML page rendering.

Pages are small inline templates sharing one layout. Every interpolated
value goes through ``html.escape``.
"""

from html import escape
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from fastapi.responses import HTMLResponse


_STYLE = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
        background: #f9fafb;
        min-height: 100vh;
        display: flex;
        align-items: center;
        justify-content: center;
        padding: 20px;
    }
    .container {
        background: white;
        border-radius: 12px;
        padding: 40px;
        max-width: 640px;
        width: 100%;
        box-shadow: 0 10px 40px rgba(0,0,0,0.08);
        text-align: center;
    }
    h1 { color: #1f2937; font-size: 26px; margin-bottom: 16px; }
    .message { color: #6b7280; font-size: 16px; line-height: 1.6; margin-bottom: 28px; }
    .alert {
        background: #fef2f2;
        color: #b91c1c;
        padding: 14px;
        border-radius: 8px;
        margin-bottom: 24px;
        font-size: 14px;
    }
    .button {
        display: inline-block;
        background: #4f46e5;
        color: white;
        padding: 12px 28px;
        border: none;
        border-radius: 8px;
        text-decoration: none;
        font-weight: 600;
        font-size: 16px;
        cursor: pointer;
    }
    .button:hover { background: #4338ca; }
    .secondary { background: #e5e7eb; color: #1f2937; }
    pre {
        text-align: left;
        background: #111827;
        color: #e5e7eb;
        padding: 16px;
        border-radius: 8px;
        overflow-x: auto;
        font-size: 12px;
        margin-bottom: 24px;
    }
    h2 { text-align: left; color: #374151; font-size: 16px; margin-bottom: 8px; }
    form { display: inline-block; margin: 4px; }
"""


def _layout(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    html_content = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{escape(title)}</title>
        <style>{_STYLE}</style>
    </head>
    <body>
        <div class="container">
            {body}
        </div>
    </body>
    </html>
    """
    return HTMLResponse(content=html_content, status_code=status_code)


def _post_button(action: str, label: str, css_class: str = "button") -> str:
    return f"""
        <form method="post" action="{escape(action)}">
            <button type="submit" class="{css_class}">{escape(label)}</button>
        </form>
    """


def render_home(
    is_authenticated: bool,
    login_url: str,
    name: Optional[str] = None,
    flash_error: Optional[str] = None,
) -> HTMLResponse:
    alert = f'<div class="alert">{escape(flash_error)}</div>' if flash_error else ""

    if is_authenticated:
        greeting = f"Welcome back{', ' + escape(name) if name else ''}."
        actions = (
            '<a href="/profile" class="button">View Profile</a>'
            + _post_button("/auth/logout", "Sign out", "button secondary")
        )
    else:
        greeting = "Sign in with ZITADEL using the Authorization Code flow with PKCE."
        actions = _post_button(login_url, "Sign in")

    return _layout("Home", f"""
            {alert}
            <h1>ZITADEL Relying Party</h1>
            <p class="message">{greeting}</p>
            {actions}
    """)


def render_signin(
    providers: List[Dict[str, str]],
    callback_url: Optional[str] = None,
    message: Optional[Dict[str, str]] = None,
) -> HTMLResponse:
    alert = ""
    if message:
        alert = f"""
            <div class="alert">
                <strong>{escape(message['heading'])}</strong><br>
                {escape(message['message'])}
            </div>
        """

    buttons = []
    for provider in providers:
        action = provider["signinUrl"]
        if callback_url:
            action = f"{action}?{urlencode({'callbackUrl': callback_url})}"
        buttons.append(_post_button(action, f"Sign in with {provider['name']}"))

    return _layout("Sign in", f"""
            {alert}
            <h1>Sign in</h1>
            <p class="message">Choose an identity provider to continue.</p>
            {''.join(buttons)}
    """)


def render_error(heading: str, message: str, status_code: int = 200) -> HTMLResponse:
    return _layout(heading, f"""
            <h1>{escape(heading)}</h1>
            <p class="message">{escape(message)}</p>
            <a href="/auth/signin" class="button">Try Again</a>
    """, status_code=status_code)


def render_logout_success() -> HTMLResponse:
    return _layout("Signed out", """
            <h1>You have been signed out</h1>
            <p class="message">Your session has ended at the application and at the identity provider.</p>
            <a href="/" class="button">Home</a>
    """)


def render_logout_error(reason: str) -> HTMLResponse:
    return _layout("Logout failed", f"""
            <h1>Logout failed</h1>
            <p class="message">{escape(reason)}</p>
            <a href="/" class="button">Home</a>
    """)


def render_profile(session_json: str, id_token_claims_json: str) -> HTMLResponse:
    return _layout("Profile", f"""
            <h1>Profile</h1>
            <h2>Session</h2>
            <pre>{escape(session_json)}</pre>
            <h2>ID token claims</h2>
            <pre>{escape(id_token_claims_json)}</pre>
            <a href="/auth/userinfo" class="button secondary">Fetch UserInfo</a>
            {_post_button('/auth/logout', 'Sign out')}
    """)


def session_view(session: Dict[str, Any]) -> Dict[str, Any]:
    """The session fields shown on the profile page."""
    return {
        "user": session.get("identity"),
        "idToken": session.get("id_token"),
        "accessToken": session.get("access_token"),
        "expiresAt": session.get("expires_at"),
    }
