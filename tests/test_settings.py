"""Tests for SiteSettings."""

import json
import os
import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from wellington_pkg.errors import ConfigError
from wellington_pkg.settings import SiteSettings, normalize_home_url


class TestSiteSettings:
    """Test cases for loading the site configuration."""

    def test_load_yaml(self, site_dir):
        loader = SiteSettings(site_dir)
        settings = loader.load_settings()
        assert settings['title'] == 'Test Blog'
        assert settings['author'] == 'Jane Doe'
        assert loader.config_file_path.endswith('.meta.yml')

    def test_load_json(self, temp_dir):
        Path(temp_dir, '.meta.json').write_text(json.dumps({
            'title': 'Json Blog', 'home_url': 'https://json.example', 'desc': 'short',
        }))
        settings = SiteSettings(temp_dir).load_settings()
        assert settings['title'] == 'Json Blog'
        assert settings['description'] == 'short'

    def test_defaults_without_file(self, temp_dir):
        loader = SiteSettings(temp_dir)
        assert loader.load_settings() == SiteSettings.DEFAULT_SETTINGS
        assert loader.config_file_path is None

    def test_yml_preferred_over_json(self, site_dir):
        Path(site_dir, '.meta.json').write_text(json.dumps({'title': 'Other'}))
        assert SiteSettings(site_dir).load_settings()['title'] == 'Test Blog'

    def test_invalid_yaml(self, temp_dir):
        Path(temp_dir, '.meta.yml').write_text("title: [unclosed\n")
        with pytest.raises(ConfigError, match='Invalid YAML'):
            SiteSettings(temp_dir).load_settings()

    def test_invalid_json(self, temp_dir):
        Path(temp_dir, '.meta.json').write_text("{broken")
        with pytest.raises(ConfigError, match='Invalid JSON'):
            SiteSettings(temp_dir).load_settings()

    def test_non_mapping(self, temp_dir):
        Path(temp_dir, '.meta.yml').write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match='mapping'):
            SiteSettings(temp_dir).load_settings()

    def test_args_take_precedence(self, site_dir):
        loader = SiteSettings(site_dir)
        loader.load_settings()
        merged = loader.merge_with_args({'title': 'From CLI', 'author': None, 'desc': 'cli desc'})
        assert merged['title'] == 'From CLI'
        assert merged['author'] == 'Jane Doe'
        assert merged['description'] == 'cli desc'

    def test_to_site(self, site_dir, site):
        loader = SiteSettings(site_dir)
        loader.load_settings()
        assert loader.to_site() == site

    def test_to_site_requires_title(self, temp_dir):
        loader = SiteSettings(temp_dir)
        loader.load_settings()
        with pytest.raises(ConfigError, match='title'):
            loader.to_site()

    def test_template_paths_resolved_from_site(self, site_dir):
        loader = SiteSettings(site_dir)
        settings = loader.load_settings()
        settings['post_template'] = 'layout/post.html'
        site = loader.to_site(settings)
        assert site.post_template == os.path.join(site_dir, 'layout', 'post.html')
        assert site.index_template is None


class TestHomeUrl:
    """Test cases for normalize_home_url."""

    def test_trailing_slash_removed(self):
        assert normalize_home_url('https://example.com/') == 'https://example.com'

    def test_port_kept(self):
        assert normalize_home_url('http://localhost:8000') == 'http://localhost:8000'

    def test_path_rejected(self):
        with pytest.raises(ConfigError, match='without path'):
            normalize_home_url('https://example.com/blog')

    @pytest.mark.parametrize('url', ['', None, 'example.com', 'ftp://example.com'])
    def test_invalid(self, url):
        with pytest.raises(ConfigError):
            normalize_home_url(url)


class TestCreateSampleConfig:

    def test_yaml_round_trip(self, temp_dir):
        loader = SiteSettings(temp_dir)
        path = loader.create_sample_config('yml', {'title': 'New', 'home_url': 'https://new.example/'})
        assert path.endswith('.meta.yml')
        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f)
        assert data['title'] == 'New'
        assert data['home_url'] == 'https://new.example'

    def test_json(self, temp_dir):
        path = SiteSettings(temp_dir).create_sample_config('json', {})
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        assert data['title'] == 'My Blog'

    def test_rejects_bad_url(self, temp_dir):
        with pytest.raises(ConfigError):
            SiteSettings(temp_dir).create_sample_config('yml', {'home_url': 'https://x.com/path'})
