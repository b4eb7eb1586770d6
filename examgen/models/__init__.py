"""Pydantic models shared across the pipeline."""
