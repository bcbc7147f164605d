"""
Backend package for the studio site API.

This package provides a FastAPI application with storage, database and
auth abstractions that replace the hosted backend's table API and edge
functions with a long-running service.

Run the API from the functions/ directory with:

    uvicorn backend.app:app --host 0.0.0.0 --port 8000

and the compression worker with:

    python -m backend.worker
"""
