"""Operator tooling: command line entry points and report rendering."""
