"""Operational scripts for Loop Stage."""
