import logging
from typing import List

from .models import db, GalleryImage
from .storage import atomic, retry_read_once
from shared.errors import ValidationError, NotFound, Forbidden

logger = logging.getLogger(__name__)


class ImageGallery:
    """
    Metadata for club photos. The binary objects live in external storage;
    clients upload there first and register the resulting URL here.
    """

    @retry_read_once
    def list(self) -> List[GalleryImage]:
        return GalleryImage.query.order_by(GalleryImage.created_at.desc(), GalleryImage.id.desc()).all()

    @retry_read_once
    def get(self, image_id: int) -> GalleryImage:
        image = db.session.get(GalleryImage, image_id)
        if image is None:
            raise NotFound("Image not found")
        return image

    def upload(self, user_id: int, data: dict) -> GalleryImage:
        errors = {}
        url = data.get('url')
        if not isinstance(url, str) or not url.strip():
            errors['url'] = "URL is required"

        file_size = data.get('file_size', data.get('fileSize'))
        if file_size is not None and (isinstance(file_size, bool) or not isinstance(file_size, int) or file_size < 0):
            errors['file_size'] = "File size must be a non-negative integer"

        metadata = {
            'caption': data.get('caption'),
            'file_name': data.get('file_name', data.get('fileName')),
            'mime_type': data.get('mime_type', data.get('mimeType')),
        }
        for key, value in metadata.items():
            if value is not None and not isinstance(value, str):
                errors[key] = "Must be a string"
        if errors:
            raise ValidationError(errors)

        with atomic('upload image'):
            image = GalleryImage(
                url=url.strip(),
                uploaded_by=user_id,
                file_size=file_size,
                **metadata
            )
            db.session.add(image)

        logger.info(f"User {user_id} added image {image.id}")
        return image

    def delete(self, image_id: int, user_id: int, requester_is_admin: bool):
        with atomic('delete image'):
            image = db.session.get(GalleryImage, image_id)
            if image is None:
                raise NotFound("Image not found")
            if image.uploaded_by != user_id and not requester_is_admin:
                raise Forbidden("Not authorized to delete this image")
            db.session.delete(image)

        logger.info(f"User {user_id} deleted image {image_id}")
