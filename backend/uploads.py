import atexit
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Iterable, Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from werkzeug.utils import secure_filename

from .errors import UploadError, ValidationError

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png"}


def allowed_image_extension(filename: str, allowed: Iterable[str] = ALLOWED_IMAGE_EXTENSIONS) -> bool:
    extension = os.path.splitext(filename)[1].lower().lstrip(".")
    if not extension:
        return False
    return extension in set(allowed)


def validate_image_file(image_file) -> str:
    """Return the sanitized filename of ``image_file`` or raise ValidationError."""
    if not image_file or not getattr(image_file, "filename", ""):
        raise ValidationError("Please upload a product image")

    original_filename = secure_filename(image_file.filename)
    if not original_filename:
        raise ValidationError("Please choose a valid file name.")

    if not allowed_image_extension(original_filename):
        raise ValidationError("Unsupported image format. Upload PNG, JPG or JPEG files.")

    return original_filename


class CloudinaryUploader:
    """Uploads product images to Cloudinary and returns the hosted URL.

    Each upload runs on a worker thread; the caller stops waiting after
    ``timeout`` seconds and gets an UploadError.
    """

    def __init__(self, folder: str = "products", timeout: float = 30,
                 logger: Optional[logging.Logger] = None, max_workers: int = 4):
        self.folder = folder
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="image-upload"
        )

    def init_app(self, app):
        self.logger = app.logger
        self.folder = app.config["UPLOAD_FOLDER_NAME"]
        self.timeout = float(app.config["UPLOAD_TIMEOUT_SECONDS"])
        cloudinary.config(
            cloud_name=app.config.get("CLOUDINARY_CLOUD_NAME"),
            api_key=app.config.get("CLOUDINARY_API_KEY"),
            api_secret=app.config.get("CLOUDINARY_API_SECRET"),
            secure=True,
        )
        atexit.register(self.shutdown)

    def shutdown(self):
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _upload(self, payload: bytes):
        return cloudinary.uploader.upload(
            payload,
            folder=self.folder,
            resource_type="image",
            allowed_formats=sorted(ALLOWED_IMAGE_EXTENSIONS),
        )

    def upload(self, image_file) -> str:
        filename = validate_image_file(image_file)
        # Workers only see bytes; the request stream closes with the request.
        payload = image_file.read()
        future = self._executor.submit(self._upload, payload)
        try:
            result = future.result(timeout=self.timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            self.logger.error("Cloudinary upload of %s timed out after %ss", filename, self.timeout)
            raise UploadError("Image upload timed out") from exc
        except CloudinaryError as exc:
            self.logger.error("Cloudinary upload of %s failed: %s", filename, exc)
            raise UploadError("Image upload failed", str(exc)) from exc

        url = (result or {}).get("secure_url") or (result or {}).get("url")
        if not url:
            raise UploadError("Image upload failed", "No URL returned for the uploaded image.")
        return url
