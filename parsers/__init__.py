"""
Feed file parsers.
"""

from parsers.feed_parser import (
    parse_feed_file,
    build_feed_template,
    ParsedFeed,
)

__all__ = [
    "parse_feed_file",
    "build_feed_template",
    "ParsedFeed",
]
