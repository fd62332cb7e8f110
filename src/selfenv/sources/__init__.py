"""Catalogs of downloadable uv and interpreter builds."""
