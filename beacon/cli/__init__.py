"""Beacon command line interface."""
