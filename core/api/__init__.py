"""
Clients for external APIs.

- openai_client: AssistantGateway over the OpenAI Assistants and Audio APIs
"""
