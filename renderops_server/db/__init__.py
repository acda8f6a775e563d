"""Application database: engine, sessions and models."""
