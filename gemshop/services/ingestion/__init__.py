"""Document ingestion: extraction, chunking, and the ingestion orchestrator."""
