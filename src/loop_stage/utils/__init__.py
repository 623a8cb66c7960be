"""Utility helpers shared by clients and the service."""
