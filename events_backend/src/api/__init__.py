"""
Game store events backend package.

The FastAPI application lives in ``src.api.main:app``; the sample-data loader
runs as ``python -m src.api.seed``.
"""
