"""Storage blueprint — /api/storage-upload

Multipart upload proxy: the browser sends the file here and we store it
with the service key. Oversized bodies are cut off by MAX_CONTENT_LENGTH
(25 MB) and answered by the app-level 413 handler.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from metalist.services.storage_service import StorageError, upload_file

logger = logging.getLogger(__name__)

storage_bp = Blueprint("storage", __name__, url_prefix="/api")


@storage_bp.route("/storage-upload", methods=["POST"])
def storage_upload():
    """Fields: file, path, bucket (default band-logos). Returns {path}."""
    file = request.files.get("file")
    path = request.form.get("path")
    bucket = request.form.get("bucket") or None

    if file is None or not file.filename or not path:
        return jsonify({"error": "Missing file or path."}), 400

    if not current_user.is_authenticated:
        return jsonify({"error": "Unauthorized."}), 401

    try:
        stored = upload_file(file, path, bucket)
    except StorageError as e:
        return jsonify({"error": str(e)}), 400

    logger.info(f"User {current_user.id} uploaded {stored}")
    return jsonify({"path": stored})
