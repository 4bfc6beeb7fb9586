"""Application plumbing: settings, logging, database, dependencies."""
