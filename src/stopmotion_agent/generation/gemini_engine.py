"""
Gemini Generation Engine
========================

Production planner and renderer backed by the Google Gemini API.

    - GeminiPosePlanner: multimodal text model with a JSON response schema
    - GeminiFrameRenderer: image-edit model with IMAGE response modality

Design Rules:
    - Blocking SDK calls run in a worker thread (asyncio.to_thread)
    - Every remote failure surfaces as PlannerError / RendererError
    - Calls are logged with model and latency, never with image bytes
"""

import asyncio
import base64
import logging
import time

from google import genai
from google.genai import types

from stopmotion_agent.generation.engine import PlannerError, RendererError
from stopmotion_agent.generation.prompts import (
    PLANNER_SYSTEM_INSTRUCTION,
    build_planner_prompt,
)
from stopmotion_agent.models.media import (
    GeneratedFrame,
    ImageFrame,
    SourceImage,
    TextFrame,
)


logger = logging.getLogger(__name__)


POSE_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "pose": types.Schema(
                type=types.Type.STRING,
                description="A single pose for the character.",
            ),
        },
        required=["pose"],
    ),
)


def create_gemini_client(api_key: str) -> genai.Client:
    """Create a Gemini API client."""
    if not api_key:
        raise ValueError("Gemini API key is missing")
    return genai.Client(api_key=api_key)


def _image_part(image: SourceImage) -> types.Part:
    return types.Part.from_bytes(data=image.data, mime_type=image.media_type)


class GeminiPosePlanner:
    """
    Pose planner using a Gemini multimodal model.

    Attributes:
        model: Gemini model name
    """

    def __init__(self, client: genai.Client, model: str = "gemini-2.5-pro") -> None:
        self._client = client
        self.model = model
        self._api_call_count: int = 0
        self._api_error_count: int = 0

    async def plan_poses(self, image: SourceImage, pose_count: int) -> str:
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_text(text=build_planner_prompt(pose_count)),
                    _image_part(image),
                ],
            )
        ]
        config = types.GenerateContentConfig(
            system_instruction=PLANNER_SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=POSE_RESPONSE_SCHEMA,
        )

        started = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            self._api_error_count += 1
            logger.error(f"Gemini planner error (model={self.model}): {e}")
            raise PlannerError(f"Pose planning failed: {e}")

        self._api_call_count += 1
        latency_ms = (time.perf_counter() - started) * 1000
        text = response.text or ""
        logger.info(
            f"Gemini planner: model={self.model}, poses_requested={pose_count}, "
            f"latency={latency_ms:.0f}ms, chars={len(text)}"
        )
        return text

    def get_metrics(self) -> dict:
        return {
            "model": self.model,
            "api_call_count": self._api_call_count,
            "api_error_count": self._api_error_count,
        }


class GeminiFrameRenderer:
    """
    Frame renderer using a Gemini image-edit model.

    Returns the first inline image part of the response. When the model
    answers with text only, returns that text as a TextFrame.

    Attributes:
        model: Gemini model name
    """

    def __init__(
        self,
        client: genai.Client,
        model: str = "gemini-2.5-flash-image-preview",
    ) -> None:
        self._client = client
        self.model = model
        self._api_call_count: int = 0
        self._api_error_count: int = 0

    async def render_frame(self, prompt: str, image: SourceImage) -> GeneratedFrame:
        contents = [
            types.Content(
                role="user",
                parts=[types.Part.from_text(text=prompt), _image_part(image)],
            )
        ]
        config = types.GenerateContentConfig(response_modalities=["IMAGE"])

        started = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            self._api_error_count += 1
            logger.error(f"Gemini renderer error (model={self.model}): {e}")
            raise RendererError(f"Frame rendering failed: {e}")

        self._api_call_count += 1
        latency_ms = (time.perf_counter() - started) * 1000

        texts = []
        for part in _response_parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                data = inline.data
                if isinstance(data, str):
                    data = base64.b64decode(data)
                logger.info(
                    f"Gemini renderer: model={self.model}, "
                    f"latency={latency_ms:.0f}ms, bytes={len(data)}"
                )
                return ImageFrame(data=data, media_type=inline.mime_type or "image/png")
            if getattr(part, "text", None):
                texts.append(part.text)

        logger.warning(
            f"Gemini renderer returned no image (model={self.model}, "
            f"latency={latency_ms:.0f}ms)"
        )
        return TextFrame(content="\n".join(texts))

    def get_metrics(self) -> dict:
        return {
            "model": self.model,
            "api_call_count": self._api_call_count,
            "api_error_count": self._api_error_count,
        }


def _response_parts(response) -> list:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    if content is None:
        return []
    return list(content.parts or [])
