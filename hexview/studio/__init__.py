"""Local preview studio: a FastAPI server around one preview project."""
