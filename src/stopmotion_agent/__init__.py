"""
Stop-Motion Agent
=================

Streaming service that turns one uploaded image into a short stop-motion
animation.

A pose planner proposes an ordered sequence of poses for the subject, then a
frame renderer edits the original image once per pose. Progress is streamed
to the client as delimited JSON chunks while the work happens.

Components:
    - agent: LangGraph orchestrator (poses → frames → complete)
    - generation: Pose planner and frame renderer backends (mock, Gemini)
    - stream: Chunk protocol encoder/decoder and the HTTP client
    - assembly: Client-side animation assembly
    - storage: Optional source-image storage

Example:
    from stopmotion_agent.config import settings

    # The service is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
