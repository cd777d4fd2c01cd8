"""mirrorbot — upstream mergeability checks for pull requests on a git mirror."""

__version__ = "0.1.0"
