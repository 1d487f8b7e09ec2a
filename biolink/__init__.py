"""Biolink redirect and analytics service."""
