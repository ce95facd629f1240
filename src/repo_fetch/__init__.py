"""repo-fetch: check out any revision of a remote git repository."""
__version__ = "0.1.0"
