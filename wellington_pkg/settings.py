#!/usr/bin/env python3
"""
Settings loader for Wellington.
Site configuration lives in the site root as .meta.yml, .meta.yaml or .meta.json.
"""

import os
import json
import logging
import yaml
from typing import Dict, Any, Optional
from urllib.parse import urlparse, urlunparse

from .errors import ConfigError
from .models import Site


class SiteSettings:
    """Load and validate the configuration of one site."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'title': None,
        'home_url': None,
        'description': '',
        'author': '',
        'post_template': None,
        'index_template': None,
        'workers': None,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['.meta.yml', '.meta.yaml', '.meta.json']

    def __init__(self, site_dir: str = None):
        """
        Initialize settings loader.

        Args:
            site_dir: Site root containing the config file. Defaults to current directory.
        """
        self.site_dir = os.path.abspath(site_dir or os.getcwd())
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None
        self.logger = logging.getLogger('Wellington.SiteSettings')

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if 'desc' in loaded_settings and 'description' not in loaded_settings:
                loaded_settings['description'] = loaded_settings.pop('desc')
            self.settings.update(loaded_settings)
            self.logger.debug(f"Loaded configuration from: {config_file}")

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.site_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ConfigError(f"Unsupported config file format: {file_ext}")
        except PermissionError:
            raise ConfigError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise ConfigError(f"Error reading configuration file {config_path}: {e}")

        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.
        """
        merged = self.settings.copy()
        for key, value in args_dict.items():
            if value is None:
                continue
            if key == 'desc':
                key = 'description'
            merged[key] = value
        return merged

    def to_site(self, settings: Dict[str, Any] = None) -> Site:
        """Validate settings and build the Site value shared by every stage."""
        settings = settings if settings is not None else self.settings
        title = settings.get('title')
        if not title:
            raise ConfigError("Site title is missing. Run `wellington --init` to create a configuration.")
        home_url = normalize_home_url(settings.get('home_url'))

        return Site(
            root=self.site_dir,
            title=str(title),
            home_url=home_url,
            description=str(settings.get('description') or ''),
            author=str(settings.get('author') or ''),
            post_template=self._resolve_path(settings.get('post_template')),
            index_template=self._resolve_path(settings.get('index_template')),
        )

    def _resolve_path(self, path):
        if not path:
            return None
        path = os.path.expanduser(str(path))
        if not os.path.isabs(path):
            path = os.path.join(self.site_dir, path)
        return path

    def create_sample_config(self, file_format: str = 'yml', values: Dict[str, Any] = None) -> str:
        """
        Create a configuration file for a new site.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')
            values: title, home_url, description and author for the site

        Returns:
            Path to created config file
        """
        values = values or {}
        config = {
            'title': values.get('title') or 'My Blog',
            'home_url': normalize_home_url(values.get('home_url') or 'https://example.com'),
            'description': values.get('description') or '',
            'author': values.get('author') or '',
        }

        extension = 'json' if file_format == 'json' else 'yml'
        config_path = os.path.join(self.site_dir, f'.meta.{extension}')

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if extension == 'json':
                    json.dump(config, f, indent=2)
                    f.write('\n')
                else:
                    f.write("# Wellington site configuration\n")
                    f.write("# Optional keys: post_template, index_template, workers\n\n")
                    yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        except PermissionError:
            raise ConfigError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise ConfigError(f"Error writing configuration file {config_path}: {e}")

        return config_path


def normalize_home_url(home_url) -> str:
    """
    Check that home_url is an absolute http(s) URL without a path.

    Returns the URL without a trailing slash so links can be joined as
    ``home_url + '/' + slug + '/'``.
    """
    if not home_url:
        raise ConfigError("Site home_url is missing")
    parsed = urlparse(str(home_url))
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigError(f"Provided an invalid home address: {home_url}")
    if len(parsed.path) > 1 or parsed.query or parsed.fragment:
        bare = urlunparse((parsed.scheme, parsed.netloc, '/', '', '', ''))
        raise ConfigError(f"Please provide a URL *without path*, for example {bare}")
    return f"{parsed.scheme}://{parsed.netloc}"
