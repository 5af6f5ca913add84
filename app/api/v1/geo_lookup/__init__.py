"""Postal code lookup endpoints."""

from app.api.v1.geo_lookup.router import router

__all__ = ["router"]
