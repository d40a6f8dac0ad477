"""
Pydantic models for the HTTP surface.
"""
