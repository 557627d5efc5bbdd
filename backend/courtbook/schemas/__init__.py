"""Pydantic request and response models for the /api/v1 surface."""
