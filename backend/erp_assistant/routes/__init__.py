"""
API routers.

Routers reach the process-wide ``ERPAssistant`` through the
``get_assistant`` dependency so tests can swap it out.
"""

from fastapi import Request

from erp_assistant.services.assistant import ERPAssistant


def get_assistant(request: Request) -> ERPAssistant:
    """Dependency returning the assistant built at startup."""
    return request.app.state.assistant
