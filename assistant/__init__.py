"""
CRM Assistant

Turns chat messages into CRM actions or generated workflow automations.

Flow:
- Router: message -> intent (explicit "/command" or LLM classification)
- Actions: intent + tenant context -> ActionResult
- Builder: free-text automation request -> validated node/connection graph

Usage:
    from assistant.service import AssistantService
    from assistant.actions import ExecutionContext, InMemoryRecordStore
    from assistant.router import EntityReference
"""

__version__ = "0.1.0"
