"""Loop Stage: vote aggregation, trending scores and threaded replies for campus loops."""

__version__ = "0.1.0"
