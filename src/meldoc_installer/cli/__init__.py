"""Command-line helpers for the meldoc installer."""
