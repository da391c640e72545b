"""Revsite static site generator.

This package builds a personal website and blog from Markdown and Jinja2
templates. Stylesheets and scripts go through a small asset pipeline that
writes content-hashed files plus a ``rev-manifest.json`` per asset category,
and templates look up the hashed URLs through the manifest-backed asset
resolver.

The main entry point is the CLI module, which provides commands for building
assets and the site, cleaning generated files, and running the development
server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
