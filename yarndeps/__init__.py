"""yarndeps - dependency tree reconstruction for Yarn Classic projects."""

__version__ = "0.1.0"
