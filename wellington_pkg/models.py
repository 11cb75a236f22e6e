"""Record types passed between the pipeline stages."""

from typing import NamedTuple, Optional
from urllib.parse import quote


class Site(NamedTuple):
    """Site-wide settings, built once per run and passed to every stage."""
    root: str
    title: str
    home_url: str
    description: str = ''
    author: str = ''
    post_template: Optional[str] = None
    index_template: Optional[str] = None


class PostSource(NamedTuple):
    slug: str
    directory: str
    source_path: str
    published: float


class RenderedPost(NamedTuple):
    slug: str
    title: str
    body: str
    excerpt: str
    page: str
    output_path: str
    published: float
    changed: bool = True

    @property
    def link(self):
        return f"{quote(self.slug)}/"


class PostWarning(NamedTuple):
    """A per-post failure that excluded the post from the catalog."""
    slug: str
    kind: str
    message: str

    def __str__(self):
        return f"{self.slug}: {self.message}"
