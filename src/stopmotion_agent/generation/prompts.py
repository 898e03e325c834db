"""
Prompt Templates
================

Fixed instructions sent to the remote models. The frame prompt wraps one
pose description with identity, style, and quality requirements.
"""

PLANNER_SYSTEM_INSTRUCTION = (
    "You are an expert stop-motion animator with deep knowledge of animation "
    "principles, character movement, and physics. When analyzing images, you "
    "understand how to break down complex movements into frame-by-frame poses "
    "that create smooth, believable animation. You consider factors like "
    "anticipation, squash and stretch, timing, and natural motion arcs. Your "
    "pose descriptions are precise, actionable, and optimized for stop-motion "
    "production workflows."
)

PLANNER_PROMPT_TEMPLATE = """Analyze the attached image and create {pose_count} sequential poses for a smooth stop-motion animation.

For the character/object in the image:
1. Identify the main subject and its current pose/position
2. Create a natural progression of poses that would work well for stop-motion
3. Consider realistic movement constraints and physics
4. Ensure each pose flows logically to the next
5. Include subtle variations in positioning, rotation, and expression if applicable

Each pose should be described clearly with specific details about:
- Body position and posture
- Limb placement and angles
- Facial expression (if visible)
- Any prop or object positioning
- Direction of movement or gaze

Make the poses suitable for creating engaging, fluid stop-motion animation."""

FRAME_PROMPT_TEMPLATE = """Transform the character/object in the attached image to match this specific pose for stop-motion animation:

{pose}

Requirements:
- Maintain the same character/object identity and visual style
- Apply the pose description precisely while keeping proportions realistic
- Preserve lighting and background elements from the original
- Ensure the transformation looks natural and suitable for frame-by-frame animation
- Keep image quality high and details sharp for stop-motion production

Generate a clean, production-ready frame that matches the pose description exactly."""


def build_planner_prompt(pose_count: int) -> str:
    return PLANNER_PROMPT_TEMPLATE.format(pose_count=pose_count)


def build_frame_prompt(pose: str) -> str:
    return FRAME_PROMPT_TEMPLATE.format(pose=pose.strip())
