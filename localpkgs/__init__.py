"""Local Packages — keep third-party packages built into a local repository."""

__version__ = "0.1.0"
