"""pacforge - build Arch Linux .pkg.tar.xz packages from a directory tree."""

__version__ = "0.1.0"
