"""docinterp: explain code strictly from a project's own markdown docs."""

__version__ = "0.1.0"
