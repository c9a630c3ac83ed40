"""Risk document ingestion: PDF parsing, chunking and search-index delivery."""

__version__ = "1.0.1"
