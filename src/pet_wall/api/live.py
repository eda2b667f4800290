"""Public live wall display endpoints."""

from __future__ import annotations

import io
import re
from typing import TYPE_CHECKING

import segno
from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse

from pet_wall.domain.display import build_overlay

if TYPE_CHECKING:
    from pet_wall.containers import AppContainer
    from pet_wall.services.rotation import LiveView

QR_SCALE = 4
QR_BORDER = 4

_SCHEME = re.compile(r"^https?://")

router = APIRouter(prefix="/live", tags=["live"])


@router.get("/state")
async def live_state(request: Request) -> dict[str, object]:
    """Return the item currently on the wall."""
    container: AppContainer = request.app.state.container
    state = _serialize_view(
        container.rotation_queue.view(),
        default_pet_title=container.settings.default_pet_title,
        slide_seconds=container.settings.slide_seconds,
    )
    submit_url = resolve_submit_url(request)
    state["submit_url"] = submit_url
    state["submit_label"] = _SCHEME.sub("", submit_url)
    return state


@router.get("/qr.svg")
async def submit_qr(request: Request) -> Response:
    """QR code pointing attendees at the submission form."""
    return Response(
        content=render_qr_svg(resolve_submit_url(request)),
        media_type="image/svg+xml",
        headers={"Cache-Control": "public, max-age=300"},
    )


@router.get("", response_class=HTMLResponse)
async def live_ui() -> HTMLResponse:
    """Full-screen display suitable for a video overlay browser source."""
    return HTMLResponse(_LIVE_UI_HTML)


def resolve_submit_url(request: Request) -> str:
    """Return the configured submit URL, or this server's /submit page."""
    container: AppContainer = request.app.state.container
    configured = container.settings.submit_url.strip()
    if configured:
        return configured
    return str(request.url_for("submit_ui"))


def render_qr_svg(url: str) -> bytes:
    """Encode a URL as a black-on-white QR code SVG."""
    qr = segno.make(url, error="m", micro=False)
    buffer = io.BytesIO()
    qr.save(
        buffer,
        kind="svg",
        scale=QR_SCALE,
        border=QR_BORDER,
        dark="#000000",
        light="#ffffff",
    )
    return buffer.getvalue()


def _serialize_view(
    view: LiveView, default_pet_title: str, slide_seconds: float
) -> dict[str, object]:
    current = None
    if view.current is not None:
        overlay = build_overlay(view.current, default_pet_title)
        current = {
            "id": str(view.current.id),
            "pet_title": overlay.pet_title,
            "location": overlay.location,
            "pet_age": overlay.pet_age,
            "caption": overlay.caption,
            "owner_credit": overlay.owner_credit,
        }
    return {
        "current": current,
        "image_url": view.asset_url,
        "approved_count": view.approved_count,
        "slide_seconds": slide_seconds,
    }


_LIVE_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Live wall</title>
    <style>
      html, body { margin: 0; width: 100%; height: 100%; background: #000; color: #fff7e6; }
      body { font-family: "Segoe UI", Tahoma, sans-serif; }
      .stage { position: relative; width: 100vw; height: 100vh; display: grid; place-items: center; }
      .stage img { width: 100%; height: 100%; object-fit: contain; background: #050505; }
      .empty { font-size: 2rem; font-weight: 600; opacity: 0.85; }
      .overlay { position: absolute; left: 14px; right: 14px; bottom: 34px; padding: 14px 18px;
                 border-radius: 16px; background: rgba(0, 0, 0, 0.55); }
      .title { font-size: 2.4rem; font-weight: 900; color: #ffe5a4; }
      .chips span { margin-left: 8px; padding: 6px 10px; border-radius: 999px;
                    border: 1px solid rgba(245, 211, 122, 0.6); }
      .line2 { margin-top: 10px; display: flex; justify-content: space-between; gap: 12px; }
      .count { position: absolute; top: 14px; right: 14px; padding: 6px 12px;
               border-radius: 999px; background: rgba(0, 0, 0, 0.45); }
      .qr { position: absolute; top: 14px; left: 14px; padding: 10px; border-radius: 14px;
            background: rgba(0, 0, 0, 0.55); text-align: center; font-size: 0.85rem; }
      .qr img { display: block; width: 156px; height: 156px; margin-bottom: 6px; }
      .footer { position: fixed; left: 0; right: 0; bottom: 0; display: flex;
                justify-content: space-between; padding: 4px 14px; font-size: 0.8rem; opacity: 0.6; }
    </style>
  </head>
  <body>
    <div class="stage">
      <img id="photo" alt="" hidden />
      <div id="empty" class="empty">Waiting for approved photos...</div>
      <div id="overlay" class="overlay" hidden>
        <span id="title" class="title"></span>
        <span id="chips" class="chips"></span>
        <div class="line2"><span id="caption"></span><span id="credit"></span></div>
      </div>
      <span id="count" class="count"></span>
    </div>
    <aside class="qr">
      <div>Send a photo of your pet</div>
      <img src="/live/qr.svg" alt="Submission QR code" />
      <span id="submit-label"></span>
    </aside>
    <footer class="footer">
      <span>Browser source: /live</span>
      <span id="interval"></span>
    </footer>
    <script>
      async function poll() {
        try {
          const res = await fetch('/live/state');
          if (res.ok) render(await res.json());
        } catch (err) {}
      }
      function render(state) {
        const photo = document.getElementById('photo');
        const empty = document.getElementById('empty');
        const overlay = document.getElementById('overlay');
        document.getElementById('count').textContent = 'Approved: ' + state.approved_count;
        document.getElementById('submit-label').textContent = state.submit_label;
        document.getElementById('interval').textContent =
          'Slide interval: ' + Math.round(state.slide_seconds) + 's';
        if (state.image_url) {
          if (photo.src !== state.image_url) photo.src = state.image_url;
          photo.hidden = false;
          empty.hidden = true;
        } else {
          photo.hidden = true;
          empty.hidden = false;
        }
        if (!state.current) {
          overlay.hidden = true;
          return;
        }
        overlay.hidden = false;
        document.getElementById('title').textContent = state.current.pet_title;
        const chips = document.getElementById('chips');
        chips.innerHTML = '';
        for (const text of [state.current.location, state.current.pet_age]) {
          if (!text) continue;
          const chip = document.createElement('span');
          chip.textContent = text;
          chips.appendChild(chip);
        }
        document.getElementById('caption').textContent = state.current.caption;
        document.getElementById('credit').textContent = state.current.owner_credit;
      }
      poll();
      setInterval(poll, 1000);
    </script>
  </body>
</html>
"""
