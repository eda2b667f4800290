"""Public submission endpoints."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse

from pet_wall.domain.frames import FrameOptions
from pet_wall.domain.submissions import SubmissionForm, UploadedPhoto

if TYPE_CHECKING:
    from pet_wall.containers import AppContainer

router = APIRouter(tags=["submissions"])


@router.post("/submissions", status_code=status.HTTP_201_CREATED)
async def create_submission(  # noqa: PLR0913
    request: Request,
    photo: UploadFile = File(...),
    display_name: str = Form(""),
    handle: str | None = Form(None),
    caption: str | None = Form(None),
    pet_name: str | None = Form(None),
    pet_age: str | None = Form(None),
    city: str | None = Form(None),
    region: str | None = Form(None),
    fit_mode: str = Form("contain"),
    zoom: float = Form(1.0),
    offset_x: float = Form(50.0),
    offset_y: float = Form(50.0),
) -> dict[str, str]:
    """Frame, store and record a new pending submission."""
    container: AppContainer = request.app.state.container
    options = FrameOptions(
        output_width=container.settings.output_width,
        output_height=container.settings.output_height,
        fit_mode=fit_mode,
        zoom=zoom,
        offset_x=offset_x,
        offset_y=offset_y,
    )
    uploaded = UploadedPhoto(
        filename=photo.filename or "photo",
        content_type=photo.content_type,
        data=await photo.read(),
    )
    form = SubmissionForm(
        display_name=display_name,
        handle=handle,
        caption=caption,
        pet_name=pet_name,
        pet_age=pet_age,
        city=city,
        region=region,
    )
    record_id = await asyncio.to_thread(
        container.submission_service.submit, uploaded, form, options
    )
    return {"id": str(record_id)}


@router.get("/submit", response_class=HTMLResponse)
async def submit_ui() -> HTMLResponse:
    """Minimal submission form that posts to the submissions API."""
    return HTMLResponse(_SUBMIT_UI_HTML)


_SUBMIT_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Send your pet photo</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }
      .row { margin-bottom: 0.8rem; }
      input, select, textarea { padding: 0.4rem 0.6rem; width: 320px; }
      button { padding: 0.5rem 1rem; }
      #output { margin-top: 1rem; font-weight: 600; }
    </style>
  </head>
  <body>
    <h1>Send your pet photo</h1>
    <form id="form">
      <div class="row"><input name="photo" type="file" accept="image/*" required /></div>
      <div class="row"><input name="display_name" placeholder="Your name" /></div>
      <div class="row"><input name="handle" placeholder="@handle (optional)" /></div>
      <div class="row"><input name="pet_name" placeholder="Pet name (optional)" /></div>
      <div class="row"><input name="pet_age" placeholder="Pet age (optional)" /></div>
      <div class="row"><input name="city" placeholder="City (optional)" /></div>
      <div class="row"><input name="region" placeholder="Region (optional)" /></div>
      <div class="row">
        <textarea name="caption" maxlength="50" placeholder="Caption (max 50)"></textarea>
      </div>
      <div class="row">
        <select name="fit_mode">
          <option value="contain">Keep whole photo</option>
          <option value="cover">Fill the frame</option>
        </select>
      </div>
      <div class="row">
        <label>Zoom <input name="zoom" type="range" min="1" max="2.5" step="0.01" value="1" /></label>
      </div>
      <button type="submit">Send</button>
    </form>
    <div id="output"></div>
    <script>
      document.getElementById('form').addEventListener('submit', async (event) => {
        event.preventDefault();
        const output = document.getElementById('output');
        output.textContent = 'Sending...';
        const res = await fetch('/submissions', {
          method: 'POST',
          body: new FormData(event.target)
        });
        const data = await res.json();
        output.textContent = res.ok
          ? 'Received! Your photo will appear once approved.'
          : (data.error || 'Error: ' + res.status);
      });
    </script>
  </body>
</html>
"""
