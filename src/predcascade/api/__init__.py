"""Read-only FastAPI views."""
