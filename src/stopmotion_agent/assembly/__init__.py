"""
Assembly Module
===============

Client-side consumer of the event stream.

Components:
    - Animation / AnimationFrame: Ordered frames with playback state
    - ClientAssembler: Event dispatch into an Animation plus status text
"""

from stopmotion_agent.assembly.animation import Animation, AnimationFrame
from stopmotion_agent.assembly.assembler import ClientAssembler

__all__ = [
    "Animation",
    "AnimationFrame",
    "ClientAssembler",
]
