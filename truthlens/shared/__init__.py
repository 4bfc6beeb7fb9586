"""Shared data layer (models, repositories, database) for the TruthLens backend."""
