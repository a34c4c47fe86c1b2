"""HTTP layer (FastAPI app + routes) of the ChatBridge runtime."""
