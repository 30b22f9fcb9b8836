import logging
import uuid
from pathlib import Path, PurePosixPath

import pillow_heif
from PIL import Image

from config import settings
from services.errors import UnsupportedMediaTypeError

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

IMAGE_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif",
    ".bmp", ".tiff", ".tif", ".svg",
}
VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a"}
TRANSCODE_EXTENSIONS = {".heic", ".heif"}

ALLOWED_MIME_TYPES = {
    "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp",
    "image/heic", "image/heif", "image/bmp", "image/tiff", "image/svg+xml",
    "video/mp4", "video/webm", "video/quicktime",
    "audio/mpeg", "audio/wav", "audio/x-wav", "audio/ogg", "audio/mp4", "audio/x-m4a",
}

_KIND_BY_EXTENSION: dict[str, str] = {
    **{ext: "image" for ext in IMAGE_EXTENSIONS},
    **{ext: "video" for ext in VIDEO_EXTENSIONS},
    **{ext: "audio" for ext in AUDIO_EXTENSIONS},
}


def file_extension(filename: str | None) -> str:
    # Only the suffix of the final path component; client paths are not trusted.
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    return Path(name).suffix.lower()


def classify_media(filename: str | None, content_type: str | None = None) -> str:
    """Return ``image``, ``video`` or ``audio`` for an upload.

    An allow-listed content type and a known extension must name the same
    kind; either one alone is enough. Anything else is rejected.
    """
    normalized = (content_type or "").split(";")[0].strip().lower()
    declared = normalized.split("/", 1)[0] if normalized in ALLOWED_MIME_TYPES else None
    by_extension = _KIND_BY_EXTENSION.get(file_extension(filename))
    if declared and by_extension and declared != by_extension:
        raise UnsupportedMediaTypeError("File extension does not match its content type")
    kind = declared or by_extension
    if kind:
        return kind
    raise UnsupportedMediaTypeError()


def _storage_extension(filename: str | None) -> str:
    ext = file_extension(filename)
    return ext if ext in _KIND_BY_EXTENSION else ""


def media_url(stored_name: str) -> str:
    prefix = (settings.UPLOAD_URL_PREFIX or "/uploads").rstrip("/")
    return f"{prefix}/{stored_name}"


def path_for_url(url: str | None) -> Path | None:
    """Map a media URL back to its file, or None if it is not one of ours."""
    prefix = (settings.UPLOAD_URL_PREFIX or "/uploads").rstrip("/") + "/"
    if not url or not url.startswith(prefix):
        return None
    name = PurePosixPath(url[len(prefix):]).name
    if not name or name in {".", ".."}:
        return None
    return settings.UPLOAD_DIR / name


def save_media_file(data: bytes, filename: str | None) -> Path:
    """Write an upload under a generated name and return its path."""
    unique_name = f"{uuid.uuid4().hex}{_storage_extension(filename)}"
    filepath = settings.UPLOAD_DIR / unique_name
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_bytes(data)
    return filepath


def needs_transcode(filepath: Path) -> bool:
    return filepath.suffix.lower() in TRANSCODE_EXTENSIONS


def transcode_to_jpeg(filepath: Path) -> Path:
    """Convert a HEIC/HEIF image to JPEG.

    On failure the original file is kept and returned unchanged.
    """
    target = filepath.with_name(f"{uuid.uuid4().hex}.jpg")
    try:
        with Image.open(filepath) as img:
            img.convert("RGB").save(target, format="JPEG", quality=90)
    except Exception as e:
        logger.warning(f"HEIC conversion failed, keeping original {filepath.name}: {e}")
        target.unlink(missing_ok=True)
        return filepath
    filepath.unlink(missing_ok=True)
    return target


def remove_media_file(url: str | None) -> bool:
    """Delete the file behind a media URL. Missing files are not an error."""
    filepath = path_for_url(url)
    if filepath is None:
        return False
    try:
        filepath.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to delete media file {filepath}: {e}")
        return False
    return True
