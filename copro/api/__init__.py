"""HTTP API of the charges engine."""
