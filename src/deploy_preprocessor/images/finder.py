"""Image selection by tag.

Finds the most recently created image matching a package name and a set of
tags. Creation times are ISO-8601 strings, so a lexicographic sort orders
them chronologically.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ImageCatalog(ABC):
    """Source of image metadata, typically a cloud inventory service."""

    @abstractmethod
    def find_images(self, cloud_provider: str, package_name: str, tags: Dict[str, str]) -> List[Dict[str, Any]]:
        """Find images matching a package name and tags.

        Args:
            cloud_provider: Provider to search.
            package_name: Package (image name prefix) to match.
            tags: Tag filters, keyed as the catalog expects them.

        Returns:
            Raw image records with ``imageName`` and ``attributes`` keys.
        """
        pass


@dataclass(frozen=True)
class ImageDetails:
    """Selected image, in the shape deploy stages expect.

    Attributes:
        image_name: Image name, also used as its identifier.
        region: Region the image is available in.
        jenkins: Build details of the image.
    """

    image_name: str
    region: str = "global"
    jenkins: Dict[str, str] = field(default_factory=lambda: {"name": "", "number": "", "host": ""})

    @property
    def image_id(self) -> str:
        return self.image_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imageName": self.image_name,
            "imageId": self.image_name,
            "ami": self.image_name,
            "amiId": self.image_name,
            "region": self.region,
            "jenkins": dict(self.jenkins),
        }


def prefix_tags(tags: Dict[str, str]) -> Dict[str, str]:
    """Prefix tag keys the way the catalog's tag filter expects."""
    return {f"tag:{key}": value for key, value in tags.items()}


def _creation_time(image: Dict[str, Any]) -> Optional[str]:
    value = (image.get("attributes") or {}).get("creationTime")
    return str(value) if value is not None else None


def sort_newest_first(images: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort images by creation time, newest first; undated images sort last."""
    dated = [i for i in images if _creation_time(i) is not None]
    undated = [i for i in images if _creation_time(i) is None]
    return sorted(dated, key=_creation_time, reverse=True) + undated


class TaggedImageFinder:
    """Selects the newest image matching a package name and tags.

    Attributes:
        catalog: Image catalog to query.
        cloud_provider: Provider the finder searches.
    """

    def __init__(self, catalog: ImageCatalog, cloud_provider: str = "alicloud"):
        self.catalog = catalog
        self.cloud_provider = cloud_provider

    def by_tags(self, package_name: str, tags: Dict[str, str]) -> Optional[List[ImageDetails]]:
        """Find the newest image matching a package name and tags.

        Args:
            package_name: Package (image name prefix) to match.
            tags: Unprefixed tag filters.

        Returns:
            Single-element list with the newest image, or None if nothing matched.
        """
        images = self.catalog.find_images(self.cloud_provider, package_name, prefix_tags(tags))
        if not images:
            logger.debug(f"No {self.cloud_provider} images match {package_name} with tags {tags}")
            return None

        latest = sort_newest_first(images)[0]
        logger.info(f"Selected image {latest['imageName']} for {package_name}")
        return [ImageDetails(image_name=latest["imageName"])]
