"""Moderation API endpoints guarded by the operator secret."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

if TYPE_CHECKING:
    from pet_wall.containers import AppContainer
    from pet_wall.services.moderation import PendingSubmission

router = APIRouter(prefix="/admin", tags=["admin"])


class ModerationRequest(BaseModel):
    """Decision sent by the operator."""

    id: UUID
    status: str


async def require_admin(
    request: Request, x_admin_token: str | None = Header(default=None)
) -> None:
    """Ensure requests include the operator secret."""
    container: AppContainer = request.app.state.container
    container.moderation_service.authorize(x_admin_token)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/pending", dependencies=[Depends(require_admin)])
async def list_pending(request: Request, limit: int | None = None) -> dict[str, object]:
    """Return pending submissions, newest first."""
    container: AppContainer = request.app.state.container
    pending = await asyncio.to_thread(
        container.moderation_service.list_pending,
        limit or container.settings.pending_limit,
    )
    return {"submissions": [_serialize_pending(item) for item in pending]}


@router.post("/moderate")
async def moderate(
    payload: ModerationRequest,
    request: Request,
    x_admin_token: str | None = Header(default=None),
) -> dict[str, bool]:
    """Approve or reject a pending submission."""
    container: AppContainer = request.app.state.container
    await asyncio.to_thread(
        container.moderation_service.moderate,
        x_admin_token,
        payload.id,
        payload.status,
    )
    return {"ok": True}


@router.get("/ui", response_class=HTMLResponse)
async def admin_ui() -> HTMLResponse:
    """Minimal moderation UI that consumes the admin API."""
    return HTMLResponse(_ADMIN_UI_HTML)


def _serialize_pending(item: PendingSubmission) -> dict[str, object]:
    record = item.record
    return {
        "id": str(record.id),
        "created_at": record.created_at.isoformat(),
        "display_name": record.display_name,
        "handle": record.handle,
        "caption": record.caption,
        "pet_name": record.pet_name,
        "image_url": item.image_url,
    }


_ADMIN_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Pet Wall Moderation</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }
      h1 { margin-bottom: 0.5rem; }
      .row { margin-bottom: 1rem; }
      input { padding: 0.4rem 0.6rem; width: 320px; }
      button { padding: 0.4rem 0.8rem; margin-right: 0.5rem; }
      .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 1rem; }
      .card { border: 1px solid #ddd; border-radius: 12px; padding: 0.8rem; }
      .card img { width: 100%; aspect-ratio: 16 / 9; object-fit: cover; border-radius: 8px; }
    </style>
  </head>
  <body>
    <h1>Pending submissions</h1>
    <div class="row">
      <label>Admin token</label><br />
      <input id="token" type="password" placeholder="X-Admin-Token" />
      <button onclick="loadPending()">Refresh</button>
    </div>
    <p id="status">Ready.</p>
    <div id="grid" class="grid"></div>
    <script>
      function headers() {
        return {
          'Content-Type': 'application/json',
          'X-Admin-Token': document.getElementById('token').value
        };
      }
      async function loadPending() {
        const status = document.getElementById('status');
        const grid = document.getElementById('grid');
        status.textContent = 'Loading...';
        const res = await fetch('/admin/pending', { headers: headers() });
        if (!res.ok) {
          status.textContent = 'Error: ' + res.status;
          return;
        }
        const data = await res.json();
        grid.innerHTML = '';
        for (const item of data.submissions) {
          const card = document.createElement('div');
          card.className = 'card';
          const img = document.createElement('img');
          img.src = item.image_url;
          const label = document.createElement('div');
          label.textContent = item.display_name + (item.handle ? ' @' + item.handle : '');
          const caption = document.createElement('div');
          caption.textContent = item.caption || '';
          const approve = document.createElement('button');
          approve.textContent = 'Approve';
          approve.onclick = () => moderate(item.id, 'approved');
          const reject = document.createElement('button');
          reject.textContent = 'Reject';
          reject.onclick = () => moderate(item.id, 'rejected');
          card.append(img, label, caption, approve, reject);
          grid.appendChild(card);
        }
        status.textContent = data.submissions.length + ' pending.';
      }
      async function moderate(id, decision) {
        const res = await fetch('/admin/moderate', {
          method: 'POST',
          headers: headers(),
          body: JSON.stringify({ id: id, status: decision })
        });
        const data = await res.json();
        document.getElementById('status').textContent = res.ok ? 'OK' : (data.error || 'Error');
        loadPending();
      }
    </script>
  </body>
</html>
"""
