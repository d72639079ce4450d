"""Beacon HTTP API."""
