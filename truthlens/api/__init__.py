"""FastAPI application for the TruthLens backend."""
