"""
FastAPI routes for the mailroom service.
"""

from __future__ import annotations

from html import escape
from http import HTTPStatus
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from mailroom.core.exceptions import NotFoundError
from mailroom.dependencies import (
    get_access_control_service,
    get_app_settings,
    get_credential_store,
    get_email_cache,
    get_email_search_service,
    get_google_oauth_client,
    get_google_token_service,
    require_admin,
    require_user,
)
from mailroom.models.oauth import AccessToken
from mailroom.schemas import (
    AccessTokenCreate,
    AccessTokenOut,
    AccessTokenUpdate,
    AdminCredentialsUpdate,
    AuthorizationUrlOut,
    EmailOut,
    GoogleConfigCreate,
    GoogleConfigOut,
    GoogleConfigUpdate,
    SearchEmailsRequest,
    SearchEmailsResponse,
    UserLoginRequest,
    UserLoginResponse,
)

router = APIRouter()
callback_router = APIRouter()

AdminDependency = Annotated[str, Depends(require_admin)]
UserDependency = Annotated[AccessToken, Depends(require_user)]


_SUCCESS_PAGE = """<html>
  <head>
    <title>Google Authentication Successful</title>
    <meta http-equiv="refresh" content="3;url={redirect_url}">
    <style>
      body {{ font-family: Arial, sans-serif; display: flex; justify-content: center;
             align-items: center; height: 100vh; margin: 0; text-align: center; }}
      .success {{ font-weight: bold; font-size: 24px; margin-bottom: 16px; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="success">Google Authentication Successful!</div>
      <p>Your account has been connected. Redirecting to dashboard...</p>
    </div>
  </body>
</html>"""


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@callback_router.get("/google-auth-callback", response_class=HTMLResponse)
async def google_auth_callback(
    token_service: Annotated[Any, Depends(get_google_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: Optional[str] = Query(None, description="Authorization code returned by Google."),
    state: Optional[str] = Query(None, description="Identifier of the configuration being authorized."),
) -> HTMLResponse:
    """Complete the consent redirect: exchange the code and store tokens on the configuration."""
    await token_service.complete_authorization(code=code, state=state)
    page = _SUCCESS_PAGE.format(redirect_url=escape(settings.admin_dashboard_url, quote=True))
    return HTMLResponse(content=page)


@router.post("/search-emails", response_model=SearchEmailsResponse)
async def search_emails(
    payload: SearchEmailsRequest,
    user: UserDependency,
    search_service: Annotated[Any, Depends(get_email_search_service)],
) -> SearchEmailsResponse:
    """Search the connected inbox for messages from one sender."""
    result = await search_service.search(payload.search_email, principal_id=user.id)
    return SearchEmailsResponse(
        emails=[EmailOut.from_model(email) for email in result.emails],
        count=result.count,
        message=result.message,
    )


@router.get("/emails", response_model=List[EmailOut])
async def list_cached_emails(
    user: UserDependency,
    email_cache: Annotated[Any, Depends(get_email_cache)],
    sender: Optional[str] = Query(None, description="Substring of the From header."),
    include_hidden: bool = Query(True, alias="includeHidden"),
) -> List[EmailOut]:
    """Previously fetched emails, newest first, with the caller's hidden flags."""
    emails = email_cache.list_emails(
        principal_id=user.id, sender=sender, include_hidden=include_hidden
    )
    return [EmailOut.from_model(email) for email in emails]


@router.post("/emails/{email_id}/toggle-visibility", response_model=EmailOut)
async def toggle_email_visibility(
    email_id: str,
    user: UserDependency,
    email_cache: Annotated[Any, Depends(get_email_cache)],
) -> EmailOut:
    """Hide or unhide an email for the calling user only."""
    return EmailOut.from_model(email_cache.toggle_visibility(email_id, user.id))


@router.post("/auth/login", response_model=UserLoginResponse)
async def user_login(
    payload: UserLoginRequest,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> UserLoginResponse:
    """Validate an access token; blocked or unknown tokens are refused."""
    record = access_control.authenticate(payload.access_token)
    return UserLoginResponse(
        id=record.id, is_blocked=record.is_blocked, created_at=record.created_at
    )


@router.post("/auth/admin/login")
async def admin_login(admin: AdminDependency) -> dict:
    return {"status": "ok", "username": admin}


@router.put("/admin/credentials", status_code=HTTPStatus.NO_CONTENT)
async def update_admin_credentials(
    payload: AdminCredentialsUpdate,
    _: AdminDependency,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> Response:
    access_control.update_admin_credentials(payload.username, payload.password)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/admin/access-tokens", response_model=List[AccessTokenOut])
async def list_access_tokens(
    _: AdminDependency,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> List[AccessTokenOut]:
    return [AccessTokenOut.from_model(record) for record in access_control.list_access_tokens()]


@router.post(
    "/admin/access-tokens",
    response_model=AccessTokenOut,
    status_code=HTTPStatus.CREATED,
)
async def create_access_token(
    payload: AccessTokenCreate,
    _: AdminDependency,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> AccessTokenOut:
    return AccessTokenOut.from_model(access_control.create_access_token(payload.token))


@router.patch("/admin/access-tokens/{token_id}", response_model=AccessTokenOut)
async def update_access_token(
    token_id: str,
    payload: AccessTokenUpdate,
    _: AdminDependency,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> AccessTokenOut:
    """Block or unblock a token in place."""
    return AccessTokenOut.from_model(access_control.set_blocked(token_id, payload.is_blocked))


@router.delete("/admin/access-tokens/{token_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_access_token(
    token_id: str,
    _: AdminDependency,
    access_control: Annotated[Any, Depends(get_access_control_service)],
) -> Response:
    access_control.delete_access_token(token_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/admin/google-configs", response_model=List[GoogleConfigOut])
async def list_google_configs(
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> List[GoogleConfigOut]:
    return [GoogleConfigOut.from_model(config) for config in credential_store.list_configs()]


@router.post(
    "/admin/google-configs",
    response_model=GoogleConfigOut,
    status_code=HTTPStatus.CREATED,
)
async def create_google_config(
    payload: GoogleConfigCreate,
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> GoogleConfigOut:
    config = credential_store.create_config(
        client_id=payload.client_id,
        client_secret=payload.client_secret,
        project_id=payload.project_id,
        auth_uri=payload.auth_uri,
        token_uri=payload.token_uri,
        auth_provider_cert_url=payload.auth_provider_cert_url,
        activate=payload.is_active,
    )
    return GoogleConfigOut.from_model(config)


@router.post(
    "/admin/google-configs/import",
    response_model=GoogleConfigOut,
    status_code=HTTPStatus.CREATED,
)
async def import_google_config(
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
    document: Dict[str, Any] = Body(..., description="Client secrets JSON downloaded from Google Cloud."),
) -> GoogleConfigOut:
    return GoogleConfigOut.from_model(credential_store.import_client_secrets(document))


@router.patch("/admin/google-configs/{config_id}", response_model=GoogleConfigOut)
async def update_google_config(
    config_id: str,
    payload: GoogleConfigUpdate,
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> GoogleConfigOut:
    config = credential_store.update_config(config_id, **payload.model_dump(exclude_unset=True))
    return GoogleConfigOut.from_model(config)


@router.post("/admin/google-configs/{config_id}/activate", response_model=GoogleConfigOut)
async def activate_google_config(
    config_id: str,
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> GoogleConfigOut:
    return GoogleConfigOut.from_model(credential_store.activate_config(config_id))


@router.delete("/admin/google-configs/{config_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_google_config(
    config_id: str,
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> Response:
    credential_store.delete_config(config_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/admin/google-configs/{config_id}/authorize", response_model=AuthorizationUrlOut)
async def start_google_authorization(
    config_id: str,
    request: Request,
    _: AdminDependency,
    credential_store: Annotated[Any, Depends(get_credential_store)],
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Google consent screen.",
    ),
):
    """Build the consent URL for a configuration; its id travels as ``state``."""
    config = credential_store.get_config(config_id)
    if config is None:
        raise NotFoundError("Google auth configuration", config_id)
    authorization_url = oauth_client.build_authorization_url(config)

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizationUrlOut(auth_url=authorization_url, redirect_uri=oauth_client.redirect_uri)


__all__ = ["callback_router", "router"]
