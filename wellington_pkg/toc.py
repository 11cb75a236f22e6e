"""Table of contents: the site root index.html listing every catalog post."""

import logging
import os

from .errors import PostIOError
from .renderer import format_date

TOC_FILE = 'index.html'


class TocBuilder:
    def __init__(self, site, templates):
        self.site = site
        self.templates = templates
        self.logger = logging.getLogger('Wellington.TocBuilder')

    def post_entries(self, posts):
        return [
            {
                'title': post.title,
                'link': post.link,
                'slug': post.slug,
                'excerpt': post.excerpt,
                'published': format_date(post.published),
            }
            for post in posts
        ]

    def render(self, posts):
        values = dict(self.templates.site_values())
        values.update(title=self.site.title, posts=self.post_entries(posts))
        return self.templates.render('index', values)

    def build(self, posts):
        """Render the index template and write index.html at the site root."""
        html = self.render(posts)
        output_path = os.path.join(self.site.root, TOC_FILE)
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(html)
        except (IOError, OSError) as e:
            raise PostIOError(f"Failed to write table of contents {output_path}: {e}")
        self.logger.info(f"Building table of contents with {len(posts)} posts")
        return output_path
