"""
Documentation for the yabs package

yabs is a small incremental build tool: it reads a JSON build description,
copies stale files, runs sources through a preprocessor and a minifier, and
rewrites ``<script src>`` references in HTML to point at the compiled output.

"""

from . import _version  # type: ignore

__version__ = _version.version  # type: ignore

DEFAULT_BUILD_ALL_FILE = 'build_all.json'
DEFAULT_BUILD_FILE = 'build.json'
