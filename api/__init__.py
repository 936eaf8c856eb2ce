"""HTTP API for the flow execution engine."""
