"""sheetdesk -- multi-sheet tabular data editor back end."""

__version__ = "0.3.0"
