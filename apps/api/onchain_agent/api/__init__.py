"""HTTP API: FastAPI app, listener and process lifecycle."""
