"""Download, re-encode and store images referenced by imported content."""
from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple
from urllib.parse import unquote, urljoin, urlparse

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from .http_client import HttpClient
from .models import ARTICLE, REVIEW, MediaRecord, SavedImage
from .text import build_alt_text, slugify_for_filename

logger = logging.getLogger(__name__)

MAX_DIMENSIONS = (1920, 1080)
JPEG_QUALITY = 85
UPLOAD_DIRECTORIES = {ARTICLE: "articles", REVIEW: "reviews"}

_DATA_URI_RE = re.compile(r"^data:(image/[a-zA-Z0-9+.\-]+);base64,(.+)$", re.DOTALL)


class MediaRecorder(Protocol):
    def record_media(self, record: MediaRecord) -> None:
        ...


def guess_extension(mime_type: str) -> str:
    lowered = mime_type.lower()
    for marker, extension in (("png", "png"), ("webp", "webp"), ("gif", "gif"), ("svg", "svg")):
        if marker in lowered:
            return extension
    return "jpg"


def _flatten(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def reencode_image(payload: bytes, max_size: Tuple[int, int] = MAX_DIMENSIONS) -> bytes:
    """Fit ``payload`` inside ``max_size`` and return it as a progressive JPEG."""

    with Image.open(BytesIO(payload)) as source:
        image = ImageOps.exif_transpose(source)
        image = _flatten(image)
        image.thumbnail(max_size, Image.Resampling.LANCZOS)
        buffer = BytesIO()
        image.save(buffer, format="JPEG", quality=JPEG_QUALITY, progressive=True, optimize=True)
    return buffer.getvalue()


class ImageStore:
    """Persist images under ``upload_root`` and record them as media."""

    def __init__(
        self,
        http_client: HttpClient,
        upload_root: Path,
        live_site_url: str,
        media_recorder: Optional[MediaRecorder] = None,
        *,
        enabled: bool = True,
        public_prefix: str = "/uploads",
        max_size: Tuple[int, int] = MAX_DIMENSIONS,
    ) -> None:
        self._http = http_client
        self._upload_root = Path(upload_root)
        self._live_site_url = live_site_url.rstrip("/")
        self._media_recorder = media_recorder
        self._enabled = enabled
        self._public_prefix = public_prefix.rstrip("/")
        self._max_size = max_size
        self._cache: Dict[Tuple[str, str], SavedImage] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def resolve_url(self, src: Optional[str]) -> Optional[str]:
        """Make ``src`` absolute against the live site."""

        if not src:
            return None
        trimmed = src.strip()
        if not trimmed:
            return None
        if trimmed.startswith("//"):
            return f"https:{trimmed}"
        if trimmed.startswith(("http://", "https://")):
            return trimmed
        if trimmed.startswith("/"):
            return f"{self._live_site_url}{trimmed}"
        return urljoin(f"{self._live_site_url}/", trimmed)

    def save(
        self,
        src: Optional[str],
        *,
        slug: str,
        label: str,
        alt_text: Optional[str] = None,
        content_type: str = ARTICLE,
    ) -> Optional[SavedImage]:
        """Store the image behind ``src`` and return its local public path.

        Returns ``None`` when the image cannot be obtained; the caller keeps
        the remote reference in that case.
        """

        if not self._enabled or not src or not src.strip():
            return None
        trimmed = src.strip()
        alt = build_alt_text(alt_text, label)

        resolved_url: Optional[str] = None
        if trimmed.startswith("data:"):
            decoded = self._decode_data_uri(trimmed)
            if decoded is None:
                return None
            payload, mime_type = decoded
            original_name = f"{slugify_for_filename(label)}.{guess_extension(mime_type)}"
        else:
            resolved_url = self.resolve_url(trimmed)
            if not resolved_url:
                return None
            cached = self._cache.get((content_type, resolved_url))
            if cached is not None:
                return replace(cached, alt=alt)
            downloaded = self._download(resolved_url, label)
            if downloaded is None:
                return None
            payload, mime_type, original_name = downloaded

        saved = self._write(payload, mime_type, original_name, slug, label, alt, content_type)
        if resolved_url:
            self._cache[(content_type, resolved_url)] = saved
        return saved

    @staticmethod
    def _decode_data_uri(src: str) -> Optional[Tuple[bytes, str]]:
        match = _DATA_URI_RE.match(src)
        if not match:
            logger.warning("Skipping inline image with unsupported data URI format")
            return None
        try:
            payload = base64.b64decode(match.group(2))
        except (binascii.Error, ValueError) as exc:
            logger.warning("Skipping inline image with invalid base64 payload: %s", exc)
            return None
        return payload, match.group(1)

    def _download(self, url: str, label: str) -> Optional[Tuple[bytes, str, str]]:
        try:
            response = self._http.get(url)
        except requests.RequestException as exc:
            logger.warning("Failed to download image %s: %s", url, exc)
            return None

        mime_type = (response.headers.get("content-type") or "image/jpeg").split(";")[0].strip()
        original_name = unquote(urlparse(url).path.rsplit("/", 1)[-1])
        if not original_name:
            original_name = f"{slugify_for_filename(label)}.{guess_extension(mime_type)}"
        return response.content, mime_type, original_name

    def _write(
        self,
        payload: bytes,
        mime_type: str,
        original_name: str,
        slug: str,
        label: str,
        alt: str,
        content_type: str,
    ) -> SavedImage:
        directory_name = UPLOAD_DIRECTORIES.get(content_type, UPLOAD_DIRECTORIES[ARTICLE])
        safe_slug = slugify_for_filename(slug or "article")
        target_dir = self._upload_root / directory_name / safe_slug
        target_dir.mkdir(parents=True, exist_ok=True)

        try:
            processed = reencode_image(payload, self._max_size)
            extension = "jpg"
            mime_type = "image/jpeg"
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            logger.warning("Unable to optimize image, using original bytes: %s", exc)
            processed = payload
            extension = guess_extension(mime_type)

        base_name = slugify_for_filename(f"{safe_slug}-{label}")
        filename = f"{base_name}.{extension}"
        counter = 1
        while (target_dir / filename).exists():
            filename = f"{base_name}-{counter}.{extension}"
            counter += 1

        (target_dir / filename).write_bytes(processed)
        public_path = f"{self._public_prefix}/{directory_name}/{safe_slug}/{filename}"

        self._record_media(
            MediaRecord(
                filename=filename,
                original_name=original_name,
                mime_type=mime_type,
                size=len(processed),
                path=public_path,
                alt=alt,
            )
        )
        return SavedImage(path=public_path, filename=filename, alt=alt)

    def _record_media(self, record: MediaRecord) -> None:
        if self._media_recorder is None:
            return
        try:
            self._media_recorder.record_media(record)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Failed to persist media metadata for %s: %s", record.path, exc)
