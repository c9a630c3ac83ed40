"""PDF decoding, text extraction, chunking and index record construction."""
