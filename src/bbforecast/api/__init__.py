"""HTTP host (FastAPI)."""
