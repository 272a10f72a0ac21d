"""Dashboard HTTP API routers."""
