import base64
from starlette.datastructures import UploadFile

from bolt_reviews.errors import ValidationError

# ======================================================
# REVIEW PHOTO RULES
# ======================================================

IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB; stored inline in the reviews table

PHOTO_FIELD_PREFIX = "photo"


def first_photo(form):
    """First uploaded file whose form field name starts with `photo`."""
    for key, value in form.multi_items():
        if key.startswith(PHOTO_FIELD_PREFIX) and isinstance(value, UploadFile):
            return value
    return None


# ======================================================
# DATA URL ENCODING
# ======================================================

async def encode_image_upload(file: UploadFile) -> str:
    """
    Validates an uploaded review photo and returns it as a
    `data:<mime>;base64,...` URL.
    """

    content_type = (file.content_type or "").lower().strip()

    if content_type not in IMAGE_TYPES:
        raise ValidationError(
            f"Unsupported file type: '{content_type}'. Allowed: JPEG, PNG, WebP, GIF."
        )

    data = await file.read()

    if not data:
        raise ValidationError("Uploaded file is empty")

    if len(data) > MAX_FILE_SIZE:
        raise ValidationError(
            f"File size {round(len(data) / 1024 / 1024, 1)}MB exceeds 5MB limit"
        )

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"
