"""Tests for TemplateEngine."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from wellington_pkg.errors import TemplateError
from wellington_pkg.templating import TemplateEngine, default_template_source

POST_VALUES = {
    'title': 'T',
    'body': '<p>x</p>',
    'slug': 's',
    'published': 'today',
    'site_title': 'Site',
    'home_url': 'https://example.com',
    'desc': '',
    'author': '',
}


class TestTemplateEngine:
    """Test cases for template lookup and rendering."""

    def test_default_post_template(self, templates):
        page = templates.render('post', POST_VALUES)
        assert '<p>x</p>' in page
        assert templates.template_path('post') is None

    def test_default_post_page_has_no_base_element(self, templates):
        page = templates.render('post', POST_VALUES)
        assert page.startswith('<!DOCTYPE html>')
        assert '<base' not in page
        assert 'site-root relative' in default_template_source('post')

    def test_values_escaped_but_body_is_not(self, templates):
        page = templates.render('post', dict(POST_VALUES, title='<b>T</b>'))
        assert '&lt;b&gt;T&lt;/b&gt;' in page
        assert '<p>x</p>' in page

    def test_dotfile_override(self, site_dir, templates):
        Path(site_dir, '.post_template.html').write_text("[{{ title }}]{{ body }}")
        assert templates.template_path('post') == os.path.join(site_dir, '.post_template.html')
        assert templates.render('post', POST_VALUES) == '[T]<p>x</p>'

    def test_configured_path_wins(self, site, site_dir):
        custom = Path(site_dir, 'custom.html')
        custom.write_text("custom {{ title }}")
        Path(site_dir, '.post_template.html').write_text("dotfile")
        engine = TemplateEngine(site._replace(post_template=str(custom)))
        assert engine.render('post', POST_VALUES) == 'custom T'

    def test_configured_path_missing(self, site, site_dir):
        engine = TemplateEngine(site._replace(post_template=os.path.join(site_dir, 'missing.html')))
        with pytest.raises(TemplateError, match='not found'):
            engine.render('post', POST_VALUES)

    def test_syntax_error(self, site_dir, templates):
        Path(site_dir, '.post_template.html').write_text("{% for %}")
        with pytest.raises(TemplateError, match='bad syntax'):
            templates.render('post', POST_VALUES)

    def test_unknown_placeholder(self, site_dir, templates):
        Path(site_dir, '.post_template.html').write_text("{{ missing }}")
        with pytest.raises(TemplateError, match='unknown placeholder'):
            templates.render('post', POST_VALUES)

    def test_unknown_template_name(self, templates):
        with pytest.raises(TemplateError):
            templates.render('sidebar', {})

    def test_validate_defaults(self, templates):
        templates.validate()

    def test_validate_broken_index(self, site_dir, templates):
        Path(site_dir, '.index_template.html').write_text("{{ posts.nope.deeper }}")
        with pytest.raises(TemplateError):
            templates.validate()

    def test_site_values(self, templates):
        assert templates.site_values() == {
            'site_title': 'Test Blog',
            'home_url': 'https://example.com',
            'desc': 'A blog for tests',
            'author': 'Jane Doe',
        }

    def test_default_template_source(self):
        assert '{{ body }}' in default_template_source('post')
        assert '{% for post in posts %}' in default_template_source('index')
