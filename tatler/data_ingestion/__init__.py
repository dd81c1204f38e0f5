"""
Data ingestion package for the restaurant directory.

Responsibilities:
- Stream restaurant rows from a CSV export.
- Validate and normalize each row into the canonical restaurant document.
- Enrich documents with synthetic grades and comments for demo data.
- Bulk insert the batch and report inserted/duplicate/failed counts.
"""
