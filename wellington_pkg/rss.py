"""RSS 2.0 feed for the catalog, written to rss.xml at the site root."""

import logging
import os
from email.utils import formatdate
from urllib.parse import quote
from xml.sax.saxutils import escape

from . import __version__
from .errors import PostIOError

RSS_FILE = 'rss.xml'


class RssBuilder:
    def __init__(self, site):
        self.site = site
        self.logger = logging.getLogger('Wellington.RssBuilder')

    def post_link(self, post):
        return f"{self.site.home_url}/{quote(post.slug)}/"

    def render(self, posts):
        """Return the feed document for posts, which must already be newest first."""
        site = self.site
        rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
<channel>
<title>{escape(site.title)}</title>
<link>{escape(site.home_url)}/</link>
<description>{escape(site.description)}</description>
<generator>Wellington {__version__}</generator>
'''
        if posts:
            # The newest post dates the feed; the wall clock would break reproducible output.
            rss_content += f"<lastBuildDate>{formatdate(posts[0].published, usegmt=True)}</lastBuildDate>\n"

        for post in posts:
            link = escape(self.post_link(post))
            rss_content += f'''<item>
<title>{escape(post.title)}</title>
<link>{link}</link>
<guid isPermaLink="true">{link}</guid>
<description>{escape(post.excerpt)}</description>
<pubDate>{formatdate(post.published, usegmt=True)}</pubDate>
'''
            if site.author:
                rss_content += f"<dc:creator>{escape(site.author)}</dc:creator>\n"
            rss_content += "</item>\n"

        rss_content += '''</channel>
</rss>
'''
        return rss_content

    def build(self, posts):
        output_path = os.path.join(self.site.root, RSS_FILE)
        rss_content = self.render(posts)
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(rss_content)
        except (IOError, OSError) as e:
            raise PostIOError(f"Failed to write RSS feed {output_path}: {e}")
        self.logger.info("Generating RSS feed")
        return output_path
