"""HTTP API for the shift leader engine."""
