"""Image selection for deploy stages."""

from deploy_preprocessor.images.finder import ImageCatalog, ImageDetails, TaggedImageFinder

__all__ = [
    "ImageCatalog",
    "ImageDetails",
    "TaggedImageFinder",
]
