"""Pydantic schemas for extracted fields, estimations and API responses."""
