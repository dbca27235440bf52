import html
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse

from ..config import settings
from ..services.i18n import Translator, get_translator


router = APIRouter(tags=["ui"])

CLIENT_ROUTES = [
    "/",
    "/login",
    "/users",
    "/map",
    "/licenses",
    "/reports",
    "/activity-logs",
    "/settings",
    "/add-facility",
    "/facility/{facility_id}",
    "/sector/{sector}",
    "/privacy",
    "/terms",
    "/security",
    "/contact",
]

# Prefixes owned by the API; never answered with the shell or redirected
RESERVED_PREFIXES = ("/api", "/auth", "/functions", "/storage", "/metrics", "/docs", "/openapi.json", "/redoc", "/assets")


def _shell(tr: Translator) -> HTMLResponse:
    name = html.escape(settings.site_name)
    tagline = html.escape(settings.site_tagline)
    page = f"""<!doctype html>
<html lang="{tr.language}" dir="{tr.dir}">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{name}</title>
<style>:root {{ --primary: {settings.brand_primary}; --accent: {settings.brand_accent}; }}</style>
</head>
<body>
<div id="root"><h1>{name}</h1><p>{tagline}</p></div>
</body>
</html>
"""
    return HTMLResponse(content=page)


def spa_index(tr: Translator):
    index_path = os.path.join(settings.frontend_dist, "index.html")
    if os.path.exists(index_path):
        return FileResponse(index_path, headers={"Cache-Control": "no-cache, no-store, must-revalidate"})
    return _shell(tr)


def _client_route(tr: Translator = Depends(get_translator)):
    return spa_index(tr)


for _path in CLIENT_ROUTES:
    router.add_api_route(_path, _client_route, methods=["GET"], include_in_schema=False)


@router.get("/{unknown:path}", include_in_schema=False)
def not_found(unknown: str):
    """Unknown client paths go back to the dashboard."""
    if ("/" + unknown).startswith(RESERVED_PREFIXES):
        raise HTTPException(status_code=404, detail="Not Found")
    return RedirectResponse(url="/")
