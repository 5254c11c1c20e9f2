# pad_analyzer/utils.py
import base64
import binascii
import math
from io import BytesIO
from typing import Any, Dict, List

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from pad_analyzer.errors import ImageDecodeError

# RGBA outline colours per region label
REGION_COLORS = {
    "Clot": (20, 20, 20, 255),
    "Dark region": (160, 0, 160, 255),
}
DEFAULT_COLOR = (255, 0, 0, 255)


def round_half_up(x: float, ndigits: int = 0) -> float:
    """Round with halves going up, unlike the banker's rounding of ``round``."""
    factor = 10 ** ndigits
    return math.floor(x * factor + 0.5) / factor


def draw_boxes_on_image(raster: np.ndarray, regions: List[Dict[str, Any]], outline_width: int = 3) -> bytes:
    """
    Draw bounding boxes and labels on an RGB raster and return PNG bytes.

    regions: list of dicts with keys:
        - 'bbox': [x_min, y_min, x_max, y_max] in raster pixels
        - 'label': optional string ('Clot', 'Dark region', ...)
        - 'score': optional float (0-1)
    """
    img = Image.fromarray(np.asarray(raster, dtype=np.uint8)).convert("RGBA")
    font = ImageFont.load_default()
    w, h = img.size

    for region in regions:
        bbox = region.get("bbox")
        if not bbox or len(bbox) != 4:
            continue
        x_min = max(0, int(bbox[0]))
        y_min = max(0, int(bbox[1]))
        x_max = min(w - 1, int(bbox[2]))
        y_max = min(h - 1, int(bbox[3]))

        label = region.get("label", "Region")
        outline_color = REGION_COLORS.get(label, DEFAULT_COLOR)
        fill_color = outline_color[:3] + (40,)

        # translucent fill goes through an overlay so the pad stays visible
        overlay = Image.new("RGBA", img.size, (255, 255, 255, 0))
        ImageDraw.Draw(overlay).rectangle([x_min, y_min, x_max, y_max], fill=fill_color)
        img = Image.alpha_composite(img, overlay)
        draw = ImageDraw.Draw(img)

        for i in range(outline_width):
            draw.rectangle([x_min - i, y_min - i, x_max + i, y_max + i], outline=outline_color)

        score = region.get("score")
        text = f"{label} ({float(score) * 100:.0f}%)" if score is not None else label

        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        text_w, text_h = right - left, bottom - top
        text_x = x_min
        text_y = max(0, y_min - text_h - 4)
        draw.rectangle([text_x, text_y, text_x + text_w + 6, text_y + text_h + 4], fill=(0, 0, 0, 160))
        draw.text((text_x + 3, text_y + 2), text, fill=(255, 255, 255, 255), font=font)

    with BytesIO() as out_bio:
        img.convert("RGB").save(out_bio, format="PNG")
        return out_bio.getvalue()


def encode_image_to_data_url(image_bytes: bytes, mime: str = "image/png") -> str:
    """
    Return a data URL (base64) string for embedding in JSON or HTML.
    Example: data:image/png;base64,AAA...
    """
    b64 = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime};base64,{b64}"


def decode_data_url(data_url: str) -> bytes:
    """Inverse of ``encode_image_to_data_url``; only base64 payloads are accepted."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ImageDecodeError("Malformed data URL; expected data:<mime>;base64,<payload>")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload in data URL: {e}") from e
