"""Post repository, duplicate detection and the ``hugopub posts`` commands."""
