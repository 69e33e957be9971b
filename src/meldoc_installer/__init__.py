"""Cross-platform installer for the meldoc CLI."""

from .__version__ import __author__, __version__

__all__ = ["__version__", "__author__"]
