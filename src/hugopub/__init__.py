"""hugopub: compose, publish, edit and delete Hugo posts."""

__version__ = "0.3.0"
