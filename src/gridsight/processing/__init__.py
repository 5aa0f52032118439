"""Orchestration of grid tracing and icon identification on a screenshot."""
