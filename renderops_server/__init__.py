"""RenderOps server: CRUD admin panels generated from database schemas."""

__version__ = "0.1.0"
