"""FastAPI integration for auth codes."""
