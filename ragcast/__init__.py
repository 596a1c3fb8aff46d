"""ragcast — transcript ingestion and hybrid retrieval Q&A over audio."""

__version__ = "0.1.0"
