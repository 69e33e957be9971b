"""Version information for meldoc-installer."""

__version__ = "0.1.0"
__author__ = "Meldoc"
