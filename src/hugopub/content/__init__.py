"""
Content format module for Hugo posts.

Provides tools for:
- Encoding and decoding front matter headers
- Reading post summaries without parsing the body
- Resolving image paths into site-relative URLs
"""

from hugopub.content.frontmatter import decode, encode, read_summary
from hugopub.content.paths import locate_image, to_url

__all__ = [
    "encode",
    "decode",
    "read_summary",
    "to_url",
    "locate_image",
]
