"""DevLens: developer profile analysis and job matching over the GitHub API."""

__version__ = "1.0.0"
