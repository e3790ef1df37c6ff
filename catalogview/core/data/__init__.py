"""Raw snapshot ingestion, table schemas and storage."""
