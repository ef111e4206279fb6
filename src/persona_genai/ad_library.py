from __future__ import annotations

import base64
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

from persona_genai.config import settings
from persona_genai.images import sniff_mime, to_data_url

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".gif")
URL_PREFIX = "/ads"


class AdNotFoundError(LookupError):
    pass


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass(frozen=True)
class AdImage:
    name: str
    url_path: str
    sha256: str


class AdLibrary:
    """Read-only directory of pre-supplied ad images, served at /ads."""

    def __init__(self, root_dir: Path | str | None = None) -> None:
        self.root_dir = Path(root_dir or settings.ads_dir).resolve()

    def exists(self) -> bool:
        return self.root_dir.is_dir()

    def list_ads(self) -> list[AdImage]:
        if not self.exists():
            return []
        out: list[AdImage] = []
        for path in sorted(self.root_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
                continue
            out.append(AdImage(name=path.name, url_path=f"{URL_PREFIX}/{path.name}", sha256=_sha256_file(path)))
        return out

    def resolve(self, ad_path: str) -> Path:
        """
        Accepts "/ads/image1.png" or "image1.png". Anything that would leave
        the library directory is rejected.
        """
        name = (ad_path or "").strip()
        if name.startswith(URL_PREFIX + "/"):
            name = name[len(URL_PREFIX) + 1 :]
        if not name or os.path.basename(name) != name or name in (".", ".."):
            raise AdNotFoundError(f"invalid ad image path '{ad_path}'")

        path = (self.root_dir / name).resolve()
        if path.parent != self.root_dir:
            raise AdNotFoundError(f"invalid ad image path '{ad_path}'")
        if not path.is_file():
            raise AdNotFoundError(f"ad image '{name}' not found")
        return path

    def read_data_url(self, ad_path: str) -> str:
        data = self.resolve(ad_path).read_bytes()
        return to_data_url(base64.b64encode(data).decode("ascii"), sniff_mime(data))
