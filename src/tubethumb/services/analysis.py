"""AI critique of thumbnails using the Google GenAI SDK.

The hosted model is an external collaborator: this module only builds the
request (inline image + fixed instruction + response schema) and validates the
JSON it gets back. One attempt per request, no retry.
"""
from __future__ import annotations

import base64
import logging
from typing import Final, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from tubethumb.domain.analysis import AnalysisResult

logger = logging.getLogger(__name__)

# Max base64 chars accepted as inline image data (~15 MB raw).
MAX_INLINE_B64: Final[int] = 20_000_000

ANALYSIS_PROMPT: Final[str] = """
Analyze this YouTube thumbnail as an expert social media marketer and graphic designer.
Provide a structured JSON response.

Evaluate:
1. Visual clarity and text readability.
2. Emotional impact.
3. Click-through potential.

Return the response in this exact JSON schema:
{
  "score": number (0-100),
  "strengths": string[] (3 bullet points),
  "weaknesses": string[] (3 bullet points),
  "suggestions": string[] (3 actionable improvements),
  "summary": string (1 short paragraph),
  "hashtags": string[] (optional, up to 5 hashtags for sharing the video),
  "caption": string (optional, one engaging social media caption),
  "dominantColors": string[] (optional, hex colors such as "#ff0000"),
  "sentiment": string (optional, the emotional vibe in a few words)
}
"""

_STRING_LIST: Final[types.Schema] = types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))

RESPONSE_SCHEMA: Final[types.Schema] = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "score": types.Schema(type=types.Type.INTEGER),
        "strengths": _STRING_LIST,
        "weaknesses": _STRING_LIST,
        "suggestions": _STRING_LIST,
        "summary": types.Schema(type=types.Type.STRING),
        "hashtags": _STRING_LIST,
        "caption": types.Schema(type=types.Type.STRING),
        "dominantColors": _STRING_LIST,
        "sentiment": types.Schema(type=types.Type.STRING),
    },
    required=["score", "strengths", "weaknesses", "suggestions", "summary"],
)


class AnalysisError(Exception):
    """Recoverable analysis failure; the message is meant for display."""


class AnalysisUnavailableError(AnalysisError):
    """No credential is configured, so the feature is disabled."""


class AnalysisClient:
    """Thin async wrapper around Gemini for thumbnail critiques.

    Notes
    -----
    - Without an API key the client is disabled and ``analyze`` refuses to make a call.
    - Construct once and pass it where needed; the SDK client is created lazily.
    """

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash") -> None:
        self._api_key: Optional[str] = api_key or None
        self.model: str = model
        self._client: Optional[genai.Client] = None
        if self._api_key is None:
            logger.info("Gemini API key not set; AI analysis is disabled")

    @property
    def enabled(self) -> bool:
        return self._api_key is not None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def analyze(self, image: bytes, mime_type: str = "image/jpeg") -> AnalysisResult:
        """Send one image to the model and return the validated critique.

        Parameters
        ----------
        image: bytes
            Raw image bytes; they travel base64-encoded as inline data.
        mime_type: str
            Declared MIME type of ``image``.

        Returns
        -------
        AnalysisResult
            The critique, validated against the declared schema.

        Raises
        ------
        AnalysisUnavailableError
            If no API key is configured (no call is attempted).
        AnalysisError
            On oversized input, transport errors, empty replies, invalid JSON or
            schema mismatches.
        """

        if not self.enabled:
            raise AnalysisUnavailableError("API Key is missing. AI features are unavailable.")
        if len(base64.b64encode(image)) > MAX_INLINE_B64:
            raise AnalysisError("Image is too large for AI analysis.")

        try:
            response: types.GenerateContentResponse = await self._get_client().aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image, mime_type=mime_type),
                    ANALYSIS_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
        except Exception as ex:  # noqa: BLE001 - SDK raises a variety of transport/API errors
            logger.error("Gemini analysis error (model=%s): %s", self.model, ex)
            raise AnalysisError(f"AI analysis failed: {ex}") from ex

        text: Optional[str] = response.text
        if not text:
            logger.error("Gemini returned an empty response", extra={"model": self.model})
            raise AnalysisError("Empty response from AI")

        try:
            return AnalysisResult.model_validate_json(text)
        except ValidationError as ex:
            logger.error("Gemini response does not match the analysis schema: %s", ex)
            raise AnalysisError("AI returned an unexpected response format.") from ex
