"""
Runtime package for the ChatBridge service.

This package contains:
- API layer (FastAPI server + routes)
- Agents (conversation handling, run polling, audio bridge)
- Stores (sessions, event logs)
- Models (Pydantic models for sessions and replies)
"""
