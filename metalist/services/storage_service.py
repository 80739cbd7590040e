"""Storage service — file uploads to Supabase Storage (prod) or local disk (dev).

Supabase buckets (band-logos, release-covers, tracks, ...) must exist in
the Supabase dashboard. Local fallback: instance/uploads/<bucket>/.

Uploads go through the Storage REST API with the service key, so bucket
policies are bypassed; the blueprint only lets authenticated users in.
"""

import logging
import os
import re

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "band-logos"

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,62}$")


class StorageError(Exception):
    """Upload rejected by storage, or the path/bucket is unusable."""


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    if url and key:
        return {"url": url.rstrip("/"), "key": key}
    return None


def clean_path(path):
    """Normalize an object path and reject traversal / absolute paths."""
    path = (path or "").strip().replace("\\", "/")
    parts = [p for p in path.split("/") if p not in ("", ".")]
    if not parts or ".." in parts or path.startswith("/"):
        raise StorageError("Invalid path.")
    return "/".join(parts)


def upload_file(file, path, bucket=None):
    """Store a Werkzeug FileStorage at `bucket`/`path`.

    Returns the stored object path.
    Raises StorageError when the bucket/path is invalid or storage
    refuses the object (e.g. it already exists).
    """
    bucket = (bucket or DEFAULT_BUCKET).strip()
    if not _BUCKET_RE.match(bucket):
        raise StorageError("Invalid bucket.")
    path = clean_path(path)

    data = file.read()
    content_type = file.mimetype or "application/octet-stream"

    supabase = _get_supabase_config()
    if supabase:
        _upload_supabase(supabase, bucket, path, data, content_type)
    else:
        _upload_local(bucket, path, data)
    return path


def _upload_supabase(config, bucket, path, data, content_type):
    url = f"{config['url']}/storage/v1/object/{bucket}/{path}"
    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
    }

    try:
        resp = requests.post(url, headers=headers, data=data, timeout=60)
    except requests.RequestException as e:
        logger.error(f"Supabase upload failed for {bucket}/{path}: {e}")
        raise StorageError("Storage is unavailable. Try again.")

    if resp.status_code >= 400:
        try:
            message = resp.json().get("message") or resp.json().get("error")
        except ValueError:
            message = None
        logger.warning(f"Supabase rejected {bucket}/{path}: {resp.status_code} {message}")
        raise StorageError(message or f"Upload failed ({resp.status_code}).")

    logger.info(f"Uploaded to Supabase: {bucket}/{path}")


def _upload_local(bucket, path, data):
    """Write to instance/uploads/<bucket>/<path> (dev fallback)."""
    root = os.path.join(current_app.instance_path, "uploads", bucket)
    filepath = os.path.join(root, path)
    if os.path.exists(filepath):
        raise StorageError("The resource already exists")

    os.makedirs(os.path.dirname(filepath), exist_ok=True)
    with open(filepath, "wb") as f:
        f.write(data)

    logger.info(f"Uploaded locally: {filepath}")
