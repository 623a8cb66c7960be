"""HTTP API packages for Loop Stage."""
