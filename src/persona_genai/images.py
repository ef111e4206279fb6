from __future__ import annotations

import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,", re.IGNORECASE)


class ImageDecodeError(ValueError):
    pass


def strip_data_url(value: str) -> str:
    """Return the bare base64 payload of a data URL (or the value unchanged)."""
    return _DATA_URL_RE.sub("", value.strip(), count=1)


def to_data_url(image_b64: str, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{image_b64}"


def decode_b64(value: str) -> bytes:
    try:
        return base64.b64decode(strip_data_url(value), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"invalid base64 image data: {exc}") from exc


def open_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError("data is not a readable image") from exc
    return img


def sniff_mime(data: bytes) -> str:
    fmt = (open_image(data).format or "PNG").lower()
    if fmt == "jpg":
        fmt = "jpeg"
    return f"image/{fmt}"


def ensure_data_url(value: str) -> str:
    """
    Uploaded images arrive either as data URLs or as bare base64; vision
    calls need a data URL with a correct mime type.
    """
    s = value.strip()
    if _DATA_URL_RE.match(s):
        return s
    return to_data_url(s, sniff_mime(decode_b64(s)))


def pil_to_png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def to_png_bytes(value: str) -> bytes:
    """Decode a base64 image (any Pillow format) and re-encode it as PNG for the edit API."""
    img = open_image(decode_b64(value))
    if img.format == "PNG":
        return decode_b64(value)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")
    return pil_to_png_bytes(img)
