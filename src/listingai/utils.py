import base64
import binascii
import io
import logging
import mimetypes
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)
IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp"]


def sanitize_filename(name: str) -> str:
    """Sanitizes a string to be a valid filename."""
    name = re.sub(r'[<>:"/\\|?*\x00-\x1F]', "_", name)
    name = re.sub(r"\s+", "_", name)
    name = name[:100]
    return name


def generate_filename(prompt: Optional[str] = None, extension: str = "png") -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if prompt:
        sane_prompt = "".join(
            c if c.isalnum() or c in (" ", "-") else "_" for c in prompt[:30]
        ).rstrip()
        sane_prompt = sane_prompt.replace(" ", "_")
        if sane_prompt:
            return f"{sane_prompt}_{timestamp}.{extension}"
    return f"image_{timestamp}.{extension}"


def get_image_extension(filename: str) -> str:
    ext = Path(filename).suffix[1:].lower()
    if ext in IMAGE_EXTENSIONS:
        return ext
    return "png"


def extension_for_mime(mime_type: Optional[str]) -> str:
    ext = mimetypes.guess_extension(mime_type or "") or ".png"
    ext = ext.lstrip(".").lower()
    return ext if ext in IMAGE_EXTENSIONS else "png"


def encode_image(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode("ascii")


def decode_image(b64_data: str) -> bytes:
    return base64.b64decode(b64_data)


def split_data_url(value: str, default_mime: str = "image/jpeg") -> Tuple[str, str]:
    """Return ``(mime_type, base64_data)`` for a data URL or bare base64 string."""
    value = value.strip()
    match = DATA_URL_RE.match(value)
    if match:
        return match.group("mime") or default_mime, value[match.end():]
    if value.startswith("data:") and "," in value:
        return default_mime, value.split(",", 1)[1]
    return default_mime, value


def to_data_url(b64_data: str, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{b64_data}"


def read_image_file(path: Path) -> Tuple[str, str]:
    """Read an image from disk as ``(mime_type, base64_data)``."""
    path = Path(path)
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    return mime_type, encode_image(path.read_bytes())


def render_placeholder_image(
    label: str = "Preview unavailable", size: Tuple[int, int] = (512, 512)
) -> str:
    """Render a flat PNG stand-in and return it as base64."""
    img = Image.new("RGB", size, color=(238, 238, 238))
    draw = ImageDraw.Draw(img)
    draw.rectangle([(8, 8), (size[0] - 9, size[1] - 9)], outline=(190, 190, 190), width=4)
    left, top, right, bottom = draw.textbbox((0, 0), label)
    position = ((size[0] - (right - left)) // 2, (size[1] - (bottom - top)) // 2)
    draw.text(position, label, fill=(120, 120, 120))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return encode_image(buffer.getvalue())


def save_image_from_b64(b64_data: str, output_path: Path) -> Optional[Path]:
    try:
        image_bytes = base64.b64decode(b64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Error decoding base64 image: {e}")
        return None
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.save(output_path)
        logger.info(f"Image saved to {output_path}")
        return output_path
    except Exception as e:
        logger.error(f"Failed to process and save b64 image to {output_path}: {e}")
        return None
