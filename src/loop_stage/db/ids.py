"""Identifier helpers for document-style primary keys."""

import uuid


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex
