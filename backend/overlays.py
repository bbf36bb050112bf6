from __future__ import annotations
from typing import List, Optional, Sequence, Tuple
import io

from PIL import Image, ImageDraw, ImageFont

from backend.models import ScreenAnalysis

MIN_SIZE = 8
BOX_COLOR = (16, 185, 129)  # emerald
HIGHLIGHT_COLOR = (239, 68, 68)


def wrap_text(text: str, max_chars: int = 50) -> str:
    """
    Basic text wrapping by word count.
    Ensures annotation text does not exceed a reasonable width.
    """
    words = text.split()
    lines: List[str] = []
    current: List[str] = []

    for w in words:
        current.append(w)
        if len(" ".join(current)) > max_chars and len(current) > 1:
            last = current.pop()
            lines.append(" ".join(current))
            current = [last]

    if current:
        lines.append(" ".join(current))
    return "\n".join(lines)


def box_to_pixels(box: Sequence[float], width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Convert a [ymin, xmin, ymax, xmax] box in 0-1000 space into
    (x, y, box_width, box_height) pixels clamped inside the image.
    """
    y_min, x_min, y_max, x_max = box
    x = int(x_min / 1000 * width)
    y = int(y_min / 1000 * height)
    bw = int((x_max - x_min) / 1000 * width)
    bh = int((y_max - y_min) / 1000 * height)

    x = max(0, min(x, width - MIN_SIZE))
    y = max(0, min(y, height - MIN_SIZE))
    if x + bw > width:
        bw = width - x
    if y + bh > height:
        bh = height - y

    bw = max(MIN_SIZE, bw)
    bh = max(MIN_SIZE, bh)
    return x, y, bw, bh


def _draw_label(draw: ImageDraw.ImageDraw, font, label_text: str,
                x: int, y: int, bh: int, w: int, h: int, color) -> None:
    padding = 4
    text_bbox = draw.multiline_textbbox((0, 0), label_text, font=font, spacing=2)
    text_w = text_bbox[2] - text_bbox[0]
    text_h = text_bbox[3] - text_bbox[1]

    # Default position: above the box
    label_x = x
    label_y = y - text_h - 2 * padding

    # If there is not enough space above, place below the box
    if label_y < 0:
        label_y = y + bh + 4

    # If it overflows to the right, shift it left
    if label_x + text_w + 2 * padding > w:
        label_x = max(0, w - text_w - 2 * padding)

    # If it still overflows bottom, clamp it
    if label_y + text_h + 2 * padding > h:
        label_y = max(0, h - text_h - 2 * padding)

    bg_rect = [label_x, label_y, label_x + text_w + 2 * padding, label_y + text_h + 2 * padding]
    draw.rectangle(bg_rect, fill=(255, 255, 255, 235), outline=color)
    draw.multiline_text((label_x + padding, label_y + padding), label_text, font=font, fill="black", spacing=2)


def draw_overlay(
    image: Image.Image,
    analysis: ScreenAnalysis,
    heuristic_id: Optional[int] = None,
    observation_index: Optional[int] = None,
) -> Image.Image:
    """
    Draw finding boxes and short labels onto a copy of ``image``.

    With no selection every unresolved finding is drawn. With a heuristic
    (and optionally an index) only that selection is drawn, resolved or not.
    """
    overlay = image.convert("RGBA")
    w, h = overlay.size
    draw = ImageDraw.Draw(overlay)
    font = ImageFont.load_default()

    selected = heuristic_id is not None
    for hid, detail in sorted(analysis.heuristics.items()):
        if selected and hid != heuristic_id:
            continue
        for idx, obs in enumerate(detail.observations):
            if observation_index is not None and idx != observation_index:
                continue
            if obs.bounding_box is None or len(obs.bounding_box) != 4:
                continue
            if obs.resolved and not selected:
                continue

            color = HIGHLIGHT_COLOR if selected else BOX_COLOR
            x, y, bw, bh = box_to_pixels(obs.bounding_box, w, h)
            draw.rectangle([x, y, x + bw, y + bh], outline=color, width=3)

            finding = obs.finding
            if len(finding) > 120:
                finding = finding[:117] + "..."
            label_text = wrap_text(f"H{hid}: {finding}", max_chars=60)
            _draw_label(draw, font, label_text, x, y, bh, w, h, color)

    return overlay


def render_overlay_png(
    image_bytes: bytes,
    analysis: ScreenAnalysis,
    heuristic_id: Optional[int] = None,
    observation_index: Optional[int] = None,
) -> bytes:
    img = Image.open(io.BytesIO(image_bytes))
    overlay = draw_overlay(img, analysis, heuristic_id, observation_index)
    buffer = io.BytesIO()
    overlay.save(buffer, format="PNG")
    return buffer.getvalue()
