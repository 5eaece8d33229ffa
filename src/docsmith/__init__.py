"""Docsmith: upload, preview, AI-edit and export documents through a remote service."""

__version__ = "0.1.0"
