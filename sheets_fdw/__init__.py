"""Google Sheets foreign data wrapper: scan engine and CLI host."""

__version__ = "0.1.0"
