"""Frame compositor that normalizes submitted photos for the live wall."""

import io
import logging

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from pet_wall.domain.errors import InvalidImage, ProcessingUnavailable
from pet_wall.domain.frames import (
    MAX_ZOOM,
    MIN_ZOOM,
    FitMode,
    FrameLayout,
    FrameOptions,
    Rect,
    clamp,
)

BACKGROUND_COLOR = (5, 5, 5)
AMBIENT_BLUR_RADIUS = 36
AMBIENT_BRIGHTNESS = 0.45
AMBIENT_OPACITY = 0.55
# (position, black alpha) from top to bottom of the frame
VIGNETTE_STOPS = ((0.0, 0.20), (0.5, 0.06), (1.0, 0.22))

OUTPUT_FORMAT = "JPEG"
OUTPUT_CONTENT_TYPE = "image/jpeg"
OUTPUT_QUALITY = 90

SHRINK_START_QUALITY = 86
SHRINK_MIN_QUALITY = 46
SHRINK_QUALITY_STEP = 10

_logger = logging.getLogger(__name__)


def plan_frame(
    source_width: int, source_height: int, options: FrameOptions
) -> FrameLayout:
    """Compute where the source lands inside the output frame."""
    if source_width <= 0 or source_height <= 0:
        raise InvalidImage("Image has zero width or height.")
    frame_w = options.output_width
    frame_h = options.output_height
    cover_scale = max(frame_w / source_width, frame_h / source_height)
    contain_scale = min(frame_w / source_width, frame_h / source_height)

    background = None
    if options.fit_mode == FitMode.CONTAIN:
        bg_w = source_width * cover_scale
        bg_h = source_height * cover_scale
        background = Rect(
            x=(frame_w - bg_w) * 0.5,
            y=(frame_h - bg_h) * 0.5,
            width=bg_w,
            height=bg_h,
        )

    base_scale = cover_scale if options.fit_mode == FitMode.COVER else contain_scale
    scale = base_scale * clamp(options.zoom, MIN_ZOOM, MAX_ZOOM)
    draw_w = source_width * scale
    draw_h = source_height * scale
    foreground = Rect(
        x=(frame_w - draw_w) * clamp(options.offset_x, 0, 100) / 100,
        y=(frame_h - draw_h) * clamp(options.offset_y, 0, 100) / 100,
        width=draw_w,
        height=draw_h,
    )
    return FrameLayout(
        width=frame_w, height=frame_h, foreground=foreground, background=background
    )


def compose_image(source: Image.Image, options: FrameOptions) -> Image.Image:
    """Render a source image into a new frame-sized image."""
    layout = plan_frame(source.width, source.height, options)
    source = flatten(source)
    canvas = _new_surface((layout.width, layout.height), BACKGROUND_COLOR)
    if layout.background is not None:
        canvas = _draw_ambient(canvas, source, layout.background)
    region = _render_region(canvas.size, source, layout.foreground)
    if region is not None:
        piece, origin = region
        canvas.paste(piece, origin)
    return canvas


def compose(source: bytes, options: FrameOptions) -> bytes:
    """Compose encoded image bytes into an encoded frame."""
    image = load_image(source)
    frame = compose_image(image, options)
    return encode_jpeg(frame, OUTPUT_QUALITY)


def shrink_to_budget(data: bytes, max_bytes: int, max_side: int) -> bytes:
    """Re-encode a source photo so it fits a size and byte budget."""
    image = load_image(data)
    if max(image.size) > max_side:
        image.thumbnail((max_side, max_side), Image.LANCZOS)
    image = flatten(image)
    quality = SHRINK_START_QUALITY
    encoded = encode_jpeg(image, quality)
    while len(encoded) > max_bytes and quality > SHRINK_MIN_QUALITY:
        quality -= SHRINK_QUALITY_STEP
        encoded = encode_jpeg(image, quality)
    _logger.info(
        "Shrunk source: %s -> %s bytes, size=%sx%s quality=%s",
        len(data),
        len(encoded),
        image.width,
        image.height,
        quality,
    )
    return encoded


def load_image(data: bytes) -> Image.Image:
    """Decode image bytes and apply EXIF orientation."""
    try:
        with Image.open(io.BytesIO(data)) as opened:
            image = ImageOps.exif_transpose(opened)
            image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise InvalidImage("Could not read the image.") from exc
    if image.width <= 0 or image.height <= 0:
        raise InvalidImage("Image has zero width or height.")
    return image


def flatten(image: Image.Image) -> Image.Image:
    """Return an RGB image with transparent areas laid over the background color."""
    if "A" not in image.getbands() and "transparency" not in image.info:
        return image if image.mode == "RGB" else image.convert("RGB")
    rgba = image.convert("RGBA")
    flat = _new_surface(rgba.size, BACKGROUND_COLOR)
    flat.paste(rgba, mask=rgba.getchannel("A"))
    return flat


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode an RGB image as JPEG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format=OUTPUT_FORMAT, quality=quality)
    return buffer.getvalue()


def _new_surface(size: tuple[int, int], color: tuple[int, int, int]) -> Image.Image:
    try:
        return Image.new("RGB", size, color)
    except (MemoryError, ValueError) as exc:
        raise ProcessingUnavailable("Could not allocate the output frame.") from exc


def _draw_ambient(canvas: Image.Image, source: Image.Image, rect: Rect) -> Image.Image:
    """Fill the frame with a blurred, dimmed copy of the source."""
    layer = canvas.copy()
    region = _render_region(canvas.size, source, rect)
    if region is not None:
        piece, origin = region
        layer.paste(piece, origin)
    layer = layer.filter(ImageFilter.GaussianBlur(AMBIENT_BLUR_RADIUS))
    layer = ImageEnhance.Brightness(layer).enhance(AMBIENT_BRIGHTNESS)
    blended = Image.blend(canvas, layer, AMBIENT_OPACITY)
    shade = _new_surface(canvas.size, (0, 0, 0))
    return Image.composite(shade, blended, _vignette_mask(canvas.width, canvas.height))


def _vignette_mask(width: int, height: int) -> Image.Image:
    column = Image.new("L", (1, height))
    span = max(height - 1, 1)
    column.putdata([round(_vignette_alpha(row / span) * 255) for row in range(height)])
    return column.resize((width, height), Image.NEAREST)


def _vignette_alpha(position: float) -> float:
    for (start, start_alpha), (end, end_alpha) in zip(
        VIGNETTE_STOPS, VIGNETTE_STOPS[1:], strict=False
    ):
        if position <= end:
            ratio = (position - start) / (end - start)
            return start_alpha + (end_alpha - start_alpha) * ratio
    return VIGNETTE_STOPS[-1][1]


def _render_region(
    canvas_size: tuple[int, int], source: Image.Image, rect: Rect
) -> tuple[Image.Image, tuple[int, int]] | None:
    """Resample only the part of the source that falls inside the canvas."""
    canvas_w, canvas_h = canvas_size
    left = max(0, round(rect.x))
    top = max(0, round(rect.y))
    right = min(canvas_w, round(rect.right))
    bottom = min(canvas_h, round(rect.bottom))
    if right <= left or bottom <= top:
        return None
    scale_x = source.width / rect.width
    scale_y = source.height / rect.height
    box = (
        clamp((left - rect.x) * scale_x, 0, source.width),
        clamp((top - rect.y) * scale_y, 0, source.height),
        clamp((right - rect.x) * scale_x, 0, source.width),
        clamp((bottom - rect.y) * scale_y, 0, source.height),
    )
    piece = source.resize((right - left, bottom - top), Image.LANCZOS, box=box)
    return piece, (left, top)
