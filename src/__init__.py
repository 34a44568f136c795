"""docsemantic: embedding-backed semantic search for document stores."""

from docsemantic.version import __version__

__all__ = ["__version__"]
