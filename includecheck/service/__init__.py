"""HTTP service mode (FastAPI)."""
