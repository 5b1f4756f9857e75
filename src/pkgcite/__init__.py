"""pkgcite: citations declared by the classes of platform packages."""

__version__ = "0.1.0"
