"""Persistent batch artifacts."""
