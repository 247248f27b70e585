"""Integration tests: full pipeline runs over HTTP."""
