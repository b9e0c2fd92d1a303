"""Rendering helpers for saved batch reports."""
