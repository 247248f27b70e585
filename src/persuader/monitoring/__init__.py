"""Prometheus metrics for the retry-validate-feedback loop."""
