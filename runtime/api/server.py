"""
FastAPI application entry point for the ChatBridge runtime.

Responsibilities:
- create the FastAPI app
- construct shared singletons (SessionStore, AssistantGateway, ConversationAgent)
- include assistant routes under /assistant

Start it with:

    uvicorn runtime.api.server:app
"""

from fastapi import FastAPI

from configs.settings import configure_logging, settings
from core.api.openai_client import AssistantGateway
from runtime.agents.conversation_agent import ConversationAgent
from runtime.store.log_store import ConsoleLogStore, LogStore
from runtime.store.session_store import SessionStore
from . import session_routes


configure_logging()


# ---------------------------------------------------------------------------
# Shared singletons
# ---------------------------------------------------------------------------

if settings.persist_sessions:
    # Sessions and events survive restarts under runtime/data.
    session_store = SessionStore(data_dir=str(settings.runtime_data_dir))
    log_store = LogStore(log_dir=str(settings.runtime_data_dir / "logs"))
else:
    session_store = SessionStore()
    log_store = ConsoleLogStore()

# The OpenAI client is created on the first request, so the app can start
# (and answer /healthz) before credentials are checked.
gateway = AssistantGateway()

conversation_agent = ConversationAgent(
    session_store=session_store,
    gateway=gateway,
    log_store=log_store,
)

# ---------------------------------------------------------------------------
# FastAPI app + route registration
# ---------------------------------------------------------------------------

app = FastAPI(title="ChatBridge Runtime")

session_routes.init_routes(conversation_agent=conversation_agent)
app.include_router(session_routes.router, prefix="/assistant")
