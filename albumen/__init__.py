"""Albumen: build a static photo gallery from a directory tree of images."""

__version__ = "0.1.0"
