"""Background processing for uploaded files."""

from gemshop.pipeline.ingestion_queue import IngestionJob, IngestionQueue

__all__ = ["IngestionJob", "IngestionQueue"]
