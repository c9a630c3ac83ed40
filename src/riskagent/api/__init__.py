"""HTTP routes of the ingestion service."""
