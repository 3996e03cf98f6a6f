"""
Docker Images API
"""

from typing import Any, Dict, List, Tuple

from ..utils import truncate_id
from .exceptions import operation

UNTAGGED = '<none>:<none>'


def parse_repo_tag(repo_tag: str) -> Tuple[str, str]:
    """
    Split "repository:tag" into its parts

    A colon at or before the last slash belongs to a registry port, in which
    case there is no tag and "latest" is assumed.
    """
    if repo_tag == UNTAGGED:
        return '<none>', '<none>'

    last_colon = repo_tag.rfind(':')
    last_slash = repo_tag.rfind('/')
    if last_colon <= last_slash:
        return repo_tag, 'latest'

    return repo_tag[:last_colon], repo_tag[last_colon + 1:]


class ImageData:
    """Image snapshot built from an /images/json entry"""

    def __init__(self, attrs: Dict[str, Any]):
        self.attrs = attrs
        self.id = attrs.get('Id', '')
        self.short_id = truncate_id(self.id)
        self.repo_tags = attrs.get('RepoTags') or []
        first_tag = self.repo_tags[0] if self.repo_tags else UNTAGGED
        self.name, self.tag = parse_repo_tag(first_tag)
        self.size = attrs.get('Size', 0)
        self.created = attrs.get('Created', 0)
        self.container_count = attrs.get('Containers', 0)
        self.in_use = self.container_count > 0

    def __repr__(self):
        return f"<Image: {self.name}:{self.tag}>"


class ImageCollection:
    """Docker Images collection"""

    def __init__(self, client):
        self.client = client

    def list(self) -> List[ImageData]:
        """List images"""
        with operation('list', 'images'):
            images = self.client.http.get('/images/json')
            return [ImageData(attrs) for attrs in images or []]

    def inspect(self, image_id: str) -> Dict[str, Any]:
        """
        Inspect an image

        Args:
            image_id: Image name or ID

        Returns:
            Raw inspect data
        """
        with operation('inspect', 'image', image_id):
            return self.client.http.get(f'/images/{image_id}/json')

    def remove(self, image_id: str, force: bool = False):
        """
        Remove image

        Args:
            image_id: Image name or ID
            force: Remove even if containers use it
        """
        params = {'force': True} if force else None
        with operation('remove', 'image', image_id):
            self.client.http.delete(f'/images/{image_id}', params=params)
