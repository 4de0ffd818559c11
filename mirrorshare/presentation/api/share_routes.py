from __future__ import annotations

import html
import logging
from typing import Mapping

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from mirrorshare.container import play_video as uc_play_video
from mirrorshare.domain.video_id import extract


_log = logging.getLogger(__name__)

router = APIRouter()

_SHARE_FIELDS = ("url", "text", "title")


def _pick_shared_link(fields: Mapping[str, object]) -> str | None:
    # Android puts the link in "text" more often than in "url"
    for name in _SHARE_FIELDS:
        value = fields.get(name)
        if isinstance(value, str) and extract(value) is not None:
            return value
    return None


def _done_page(video_id: str | None) -> HTMLResponse:
    if video_id:
        heading = "Sent to the mirror"
        detail = f"Playing <code>{html.escape(video_id)}</code>."
    else:
        heading = "Nothing to play"
        detail = "The shared content did not contain a YouTube link."
    return HTMLResponse(
        "<!doctype html><html><head><meta charset='utf-8'/>"
        "<meta name='viewport' content='width=device-width,initial-scale=1'/>"
        "<title>Share to Mirror</title>"
        "<style>html,body{height:100%;margin:0;background:#0f1115;color:#e8ecf3;display:grid;place-items:center;"
        "font:15px/1.4 system-ui,-apple-system,Arial;text-align:center}a{color:#3b82f6}</style></head>"
        f"<body><div><h1>{heading}</h1><p>{detail}</p><p><a href='/'>Back</a></p></div></body></html>",
        status_code=200,
    )


async def _share(fields: Mapping[str, object]) -> HTMLResponse:
    link = _pick_shared_link(fields)
    if link is None:
        _log.info("share-target received no YouTube link")
        return _done_page(None)
    result = await uc_play_video()(link)
    return _done_page(result["videoId"])


@router.post("/share-target", response_class=HTMLResponse)
async def share_target_post(request: Request) -> HTMLResponse:
    form = await request.form()
    return await _share(form)


@router.get("/share-target", response_class=HTMLResponse)
async def share_target_get(request: Request) -> HTMLResponse:
    return await _share(request.query_params)
