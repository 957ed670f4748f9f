from .images import ImageIntake, ImageUpload
from .service import PostService

__all__ = ["ImageIntake", "ImageUpload", "PostService"]
