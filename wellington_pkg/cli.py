#!/usr/bin/env python3
"""
Command-line interface for Wellington.
"""

import os
import sys
import argparse
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from . import __version__
from .errors import ConfigError, SyncError, TemplateError
from .settings import SiteSettings
from .sync import SyncOrchestrator
from .templating import OVERRIDE_FILES, TemplateEngine, default_template_source


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    allowed_messages = [
        "Sync completed in",
        "Total posts rendered:",
        "Post files updated:",
        "Warnings:",
        "Building table of contents",
        "Generating RSS feed",
        "Rendering ",
    ]

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        return any(msg in record.getMessage() for msg in self.allowed_messages)


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None) -> logging.Logger:
    """Set up console and file logging for the 'Wellington' logger tree."""
    logger = logging.getLogger('Wellington')
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        if not verbose:
            console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        # File handler for all logs
        logs_dir = log_dir or os.path.join(os.getcwd(), 'logs')
        os.makedirs(logs_dir, exist_ok=True)
        log_filename = datetime.now().strftime('wellington_%Y-%m-%d_%H-%M-%S.log')
        file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename), encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)

    return logger


def init_site(site_dir: str, file_format: str, values: Dict[str, Any], copy_templates: bool = False) -> List[str]:
    """Write the site configuration and, optionally, editable template copies."""
    os.makedirs(site_dir, exist_ok=True)
    settings_loader = SiteSettings(site_dir)
    created = [settings_loader.create_sample_config(file_format, values)]
    print(f"Created site configuration: {created[0]}")

    if copy_templates:
        for name, filename in OVERRIDE_FILES.items():
            path = os.path.join(site_dir, filename)
            if os.path.exists(path):
                print(f"Template already exists: {filename}")
                continue
            with open(path, 'w', encoding='utf-8') as f:
                f.write(default_template_source(name))
            created.append(path)
            print(f"Created template: {filename}")

    settings_loader.load_settings()
    TemplateEngine(settings_loader.to_site()).validate()
    return created


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Wellington - static blog generator with sidenotes')
    parser.add_argument('--site', type=str, default='.',
                        help='Site root directory (default: current directory)')
    parser.add_argument('--workers', type=int,
                        help='Render posts in N processes (default: automatic)')
    parser.add_argument('--title', type=str, help='Site title')
    parser.add_argument('--home-url', type=str, help='Site home URL, without path')
    parser.add_argument('--desc', type=str, help='Site description')
    parser.add_argument('--author', type=str, help='Site author')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create the site configuration file')
    parser.add_argument('--templates', action='store_true',
                        help='With --init, also write editable copies of the default templates')
    parser.add_argument('--check', action='store_true',
                        help='Validate configuration and templates without syncing')
    parser.add_argument('--verbose', action='store_true', help='Show debug output')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)
    site_dir = os.path.abspath(os.path.expanduser(args.site))
    logger = setup_logging(args.verbose)

    # Handle init command
    if args.init:
        values = {
            'title': args.title,
            'home_url': args.home_url,
            'description': args.desc,
            'author': args.author,
        }
        try:
            init_site(site_dir, args.init, values, copy_templates=args.templates)
        except (ConfigError, TemplateError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print("\nYour new Wellington site is ready!")
        print("Add a post as <slug>/index.md, then run 'wellington' to build your site.")
        return

    args_dict = {
        'title': args.title,
        'home_url': args.home_url,
        'desc': args.desc,
        'author': args.author,
        'workers': args.workers,
    }

    settings_loader = SiteSettings(site_dir)
    try:
        settings_loader.load_settings()
        final_settings = settings_loader.merge_with_args(args_dict)
        site = settings_loader.to_site(final_settings)
        templates = TemplateEngine(site)
        if args.check:
            templates.validate()
    except (ConfigError, TemplateError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.check:
        print(f"Configuration and templates for {site.title} look good.")
        return

    orchestrator = SyncOrchestrator(site, templates=templates, workers=final_settings.get('workers'))
    try:
        report = orchestrator.run()
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Show sync statistics
    logger.info(f"Sync completed in {report.elapsed:.6f} seconds.")
    logger.info(f"Total posts rendered: {report.rendered}")
    logger.info(f"Post files updated: {report.updated}")
    if report.warnings:
        # Each warning was already logged with its slug while rendering.
        logger.info(f"Warnings: {len(report.warnings)} post(s) skipped: "
                    f"{', '.join(w.slug for w in report.warnings)}")


if __name__ == '__main__':
    main()
