"""Storage service — homeowner photos and generated images.

Supabase Storage in production, local disk (instance/uploads/) in dev.
Uploads live under uploads/<filename>, generated images under
generated/<filename>. The filename is what the widget passes back to
/api/generate.
"""

import logging
import mimetypes
import os
import uuid

import requests
from flask import current_app
from werkzeug.utils import secure_filename

from renovision.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Max file size: 10 MB
MAX_FILE_SIZE = 10 * 1024 * 1024

ALLOWED_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".webp", ".heic",
}

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
}

UPLOAD_PREFIX = "uploads"
GENERATED_PREFIX = "generated"


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_STORAGE_BUCKET", "renovation-images")

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def mime_type_for(filename):
    ext = os.path.splitext(filename)[1].lower()
    return MIME_TYPES.get(ext) or mimetypes.guess_type(filename)[0] or "image/jpeg"


def validate_image(file):
    """Validate an uploaded photo (from request.files).

    Returns (ok: bool, error: str|None).
    """
    if not file or not file.filename:
        return False, "No image uploaded"

    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"File type '{ext}' is not allowed. Please upload a JPG, PNG, WEBP or HEIC photo."

    # Check file size (read + seek back)
    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)

    if size > MAX_FILE_SIZE:
        return False, f"Image is too large ({size / (1024*1024):.1f} MB). Maximum is 10 MB."

    if size == 0:
        return False, "Image is empty."

    return True, None


def save_upload(file):
    """Store a validated photo and return metadata dict.

    Returns dict with:
        filename: stored name (uuid-prefixed, safe for paths)
        original_name: what the browser sent
        content_type: MIME type
        file_size: bytes
        public_url: URL to access the file
    """
    original_name = file.filename
    safe_name = secure_filename(original_name) or f"photo{os.path.splitext(original_name)[1].lower()}"
    filename = f"{uuid.uuid4().hex}-{safe_name}"

    data = file.read()
    content_type = file.content_type or mime_type_for(filename)

    public_url = _store(f"{UPLOAD_PREFIX}/{filename}", data, content_type)

    return {
        "filename": filename,
        "original_name": original_name,
        "content_type": content_type,
        "file_size": len(data),
        "public_url": public_url,
    }


def load_upload(filename):
    """Return (bytes, mime_type) of a stored upload.

    Raises:
        ValidationError: If the filename is not a plain stored name.
        NotFoundError: If no such upload exists.
    """
    if not filename or secure_filename(filename) != filename:
        raise ValidationError("Invalid filename.")

    path = f"{UPLOAD_PREFIX}/{filename}"

    # Local first: a failed Supabase upload falls back to disk.
    filepath = os.path.join(current_app.instance_path, UPLOAD_PREFIX, filename)
    if os.path.isfile(filepath):
        with open(filepath, "rb") as f:
            return f.read(), mime_type_for(filename)

    supabase = _get_supabase_config()
    if supabase is None:
        raise NotFoundError("Image not found")

    url = f"{supabase['url']}/storage/v1/object/{supabase['bucket']}/{path}"
    headers = {"Authorization": f"Bearer {supabase['key']}"}
    resp = requests.get(url, headers=headers, timeout=30)
    if resp.status_code in (400, 404):
        raise NotFoundError("Image not found")
    resp.raise_for_status()

    return resp.content, mime_type_for(filename)


def save_generated(data, content_type="image/png"):
    """Store a generated image returned inline by the provider. Returns its URL."""
    ext = mimetypes.guess_extension(content_type) or ".png"
    return _store(f"{GENERATED_PREFIX}/{uuid.uuid4().hex}{ext}", data, content_type)


def _store(path, data, content_type):
    supabase = _get_supabase_config()
    if supabase:
        return _upload_supabase(supabase, path, data, content_type)
    return _upload_local(path, data)


def _upload_supabase(config, path, data, content_type):
    """Upload to Supabase Storage. Returns public URL."""
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{path}"

    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
        "x-upsert": "true",
    }

    try:
        resp = requests.post(url, headers=headers, data=data, timeout=30)
        resp.raise_for_status()

        public_url = f"{config['url']}/storage/v1/object/public/{config['bucket']}/{path}"
        logger.info(f"Uploaded to Supabase: {path}")
        return public_url

    except requests.RequestException as e:
        logger.error(f"Supabase upload failed: {e}")
        # Fall back to local
        return _upload_local(path, data)


def _upload_local(path, data):
    """Write to the local filesystem (dev fallback). Returns URL path."""
    upload_dir = os.path.join(
        current_app.instance_path, os.path.dirname(path)
    )
    os.makedirs(upload_dir, exist_ok=True)

    filepath = os.path.join(current_app.instance_path, path)
    with open(filepath, "wb") as f:
        f.write(data)

    logger.info(f"Stored locally: {filepath}")
    # Return a URL path that our Flask app can serve
    return f"/{path}"
