"""FastAPI server for the hexview studio."""
