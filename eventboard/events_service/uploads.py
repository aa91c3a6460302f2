"""
Event image uploads.

Files land in the UPLOAD_FOLDER configured on the app and are referenced
from the events table as "uploads/<filename>", the same path the gateway
serves them from.
"""

import logging
import os
import secrets
from typing import Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from eventboard.errors import ValidationError

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
URL_PREFIX = "uploads"


def save_image(file: Optional[FileStorage]) -> Optional[str]:
    """
    Store an uploaded image.

    Args:
        file: The multipart "image" field, if any.

    Returns:
        str: Path reference such as "uploads/3f9c..-poster.png", or None when
             no file was sent.

    Raises:
        ValidationError: If the file type is not an allowed image type.
    """
    if file is None or not file.filename:
        return None

    filename = secure_filename(file.filename)
    file_ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if file_ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    stored_name = f"{secrets.token_hex(8)}-{filename}"
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    file.save(os.path.join(folder, stored_name))

    logging.info(f"[Events] Saved upload {stored_name}")
    return f"{URL_PREFIX}/{stored_name}"


def discard_image(path: Optional[str]) -> None:
    """Remove a stored image, e.g. when the request that uploaded it failed."""
    if not path:
        return

    stored_name = os.path.basename(path)
    try:
        os.remove(os.path.join(current_app.config["UPLOAD_FOLDER"], stored_name))
    except FileNotFoundError:
        pass
