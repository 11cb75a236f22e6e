"""Test configuration and fixtures for Wellington tests."""

import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from wellington_pkg.models import PostSource, Site
from wellington_pkg.templating import TemplateEngine

# Fixed timestamps so publish order is deterministic in tests
OLDER = 1_600_000_000.0
NEWER = 1_700_000_000.0


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def site_dir(temp_dir):
    """Create an empty site root with a configuration file."""
    root = Path(temp_dir) / 'blog'
    root.mkdir()
    (root / '.meta.yml').write_text(
        "title: Test Blog\n"
        "home_url: https://example.com\n"
        "description: A blog for tests\n"
        "author: Jane Doe\n"
    )
    return str(root)


@pytest.fixture
def site(site_dir):
    return Site(
        root=site_dir,
        title='Test Blog',
        home_url='https://example.com',
        description='A blog for tests',
        author='Jane Doe',
    )


@pytest.fixture
def templates(site):
    return TemplateEngine(site)


@pytest.fixture
def write_post(site_dir):
    """Factory writing <slug>/index.md, optionally with a fixed modification time."""
    def _write_post(slug, text, mtime=None):
        post_dir = Path(site_dir) / slug
        post_dir.mkdir(exist_ok=True)
        source = post_dir / 'index.md'
        source.write_text(text, encoding='utf-8')
        if mtime is not None:
            os.utime(source, (mtime, mtime))
        return str(source)
    return _write_post


@pytest.fixture
def make_source(write_post, site_dir):
    """Factory returning a PostSource for a freshly written post."""
    def _make_source(slug, text, published=OLDER):
        source_path = write_post(slug, text)
        return PostSource(slug, os.path.join(site_dir, slug), source_path, published)
    return _make_source


@pytest.fixture
def sample_post():
    return """# Title

Hi{a note}

![x](img.png)
"""
