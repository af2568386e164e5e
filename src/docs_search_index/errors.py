"""Exceptions raised while building or loading search indices."""


class DocsSearchError(Exception):
    """Base class for all documentation search errors."""


class BuildInputError(DocsSearchError, ValueError):
    """The page source is missing or malformed; the build is aborted."""


class ArtifactLoadError(DocsSearchError, ValueError):
    """The serialized index is missing or malformed; nothing is served."""
