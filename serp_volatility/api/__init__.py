"""API layer: versioned FastAPI routers and shared request dependencies."""
