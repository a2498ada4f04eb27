"""HTTP API for the checkout and the operator console."""
