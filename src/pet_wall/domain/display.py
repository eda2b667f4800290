"""Overlay text shown with the current photo on the live wall."""

import re
from dataclasses import dataclass

from pet_wall.domain.rotation import QueueItem

CAPTION_DISPLAY_CHARS = 50

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class LiveOverlay:
    """Formatted strings for the photo overlay."""

    pet_title: str
    location: str
    pet_age: str
    caption: str
    owner_credit: str


def build_overlay(item: QueueItem, default_pet_title: str) -> LiveOverlay:
    """Format the overlay lines for a queue item."""
    owner_name = (item.display_name or "").strip()
    pet_title = (item.pet_name or "").strip() or default_pet_title
    show_owner = bool(owner_name) and owner_name.lower() != pet_title.lower()
    credit_parts = [owner_name if show_owner else "", format_handle(item.handle)]
    return LiveOverlay(
        pet_title=pet_title,
        location=format_location(item.city, item.region),
        pet_age=format_pet_age(item.pet_age),
        caption=truncate_text(item.caption, CAPTION_DISPLAY_CHARS),
        owner_credit="  ".join(part for part in credit_parts if part),
    )


def format_handle(handle: str | None) -> str:
    """Return the handle with a single leading @."""
    if not handle:
        return ""
    trimmed = handle.strip()
    if not trimmed:
        return ""
    return trimmed if trimmed.startswith("@") else f"@{trimmed}"


def format_location(city: str | None, region: str | None) -> str:
    city_text = (city or "").strip()
    region_text = (region or "").strip()
    if city_text and region_text:
        return f"{city_text}/{region_text}"
    return city_text or region_text


def format_pet_age(age: str | None) -> str:
    if age is None:
        return ""
    text = str(age).strip()
    return f"Age: {text}" if text else ""


def truncate_text(value: str | None, max_chars: int) -> str:
    """Collapse whitespace and cut the text with an ellipsis."""
    if not value:
        return ""
    normalized = _WHITESPACE.sub(" ", value.strip())
    if len(normalized) <= max_chars:
        return normalized
    return f"{normalized[:max_chars].rstrip()}..."
