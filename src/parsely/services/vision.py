"""
Vision Service: Read a recipe straight from photos using an OpenRouter vision model.

The model is asked for a JSON object shaped like the canonical Recipe; the
reply is recovered with parse_recipe_response().
"""

import asyncio
import base64
import json
import logging
import os
import re
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from ..config import DEFAULT_VISION_MODEL
from ..exceptions import ParsingError, RateLimitedError
from ..models import Recipe

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
MAX_TOKENS = 4096
MAX_ATTEMPTS = 3

SUPPORTED_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

VISION_PROMPT = """Analyze {count} recipe image(s) and structure the recipe as JSON:
{{
  "name": string,
  "ingredients": string[],
  "instructions": {{"text": string}}[],
  "cuisineType": string | null,
  "prepTime": string | null,
  "cookTime": string | null,
  "recipeYield": string | null,
  "notes": string | null
}}
The recipe is written in {language}. Keep the text in its original language.
Return only the JSON object."""

# (filename, raw bytes)
ImageInput = Tuple[str, bytes]


def image_media_type(filename: str) -> str:
    """
    Return the media type of a supported image file.

    Raises:
        ValueError: If the extension is not a supported image format
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_IMAGE_TYPES:
        raise ValueError(
            f"Unsupported image format: {suffix or filename}. "
            f"Supported formats: {', '.join(SUPPORTED_IMAGE_TYPES)}"
        )
    return SUPPORTED_IMAGE_TYPES[suffix]


def parse_recipe_response(text: Optional[str]) -> Recipe:
    """
    Recover a Recipe from a model reply.

    The span from the first "{" to the last "}" is decoded as JSON and
    validated against the Recipe model.

    Raises:
        ParsingError: If no valid recipe object can be recovered
    """
    match = JSON_OBJECT.search(text or "")
    if not match:
        raise ParsingError("Failed to extract JSON from model response",
                           details={"response": (text or "")[:500]})
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParsingError(f"Model response is not valid JSON: {e}",
                           details={"response": match.group(0)[:500]}) from e
    if not isinstance(data, dict):
        raise ParsingError("Model response is not a JSON object")
    try:
        return Recipe.model_validate(data)
    except ValidationError as e:
        raise ParsingError(f"Model response is not a valid recipe: {e}",
                           details={"errors": e.errors()}) from e


class RecipeVisionService:
    """Extract structured recipes from images using the OpenRouter vision API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_VISION_MODEL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OPENROUTER_API_KEY is required for photo import. "
                "Set the env var or pass api_key."
            )
        self.model = model
        self.client = client
        self.timeout = timeout
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    async def infer_recipe(self, images: Sequence[ImageInput], language: str = "english") -> Recipe:
        """
        Read one recipe from one or more photos.

        Args:
            images: (filename, bytes) pairs; all of them describe the same recipe
            language: Language the recipe is written in

        Returns:
            The recipe read from the photos

        Raises:
            ValueError: If no image is given or an image format is unsupported
            RateLimitedError: If the API keeps answering 429
            RuntimeError: If the API call fails
            ParsingError: If the reply holds no valid recipe
        """
        if not images:
            raise ValueError("At least one image is required.")

        content: List[dict] = [
            {"type": "text", "text": VISION_PROMPT.format(count=len(images), language=language)}
        ]
        for filename, data in images:
            encoded = base64.b64encode(data).decode("utf-8")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{image_media_type(filename)};base64,{encoded}"},
            })

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": MAX_TOKENS,
            "temperature": 0.1,
        }

        self.logger.info(f"Calling vision API ({self.model}) with {len(images)} image(s)...")
        response = await self._post_with_retry(payload)

        data = response.json()
        if "choices" not in data or not data["choices"]:
            raise RuntimeError(f"Vision API returned unexpected response: {data}")

        usage = data.get("usage", {})
        self.logger.info(
            f"Vision call complete ({usage.get('prompt_tokens', 0)} input + "
            f"{usage.get('completion_tokens', 0)} output tokens)"
        )
        return parse_recipe_response(data["choices"][0]["message"]["content"])

    async def _post_with_retry(self, payload: dict) -> httpx.Response:
        attempt = 1
        while True:
            try:
                response = await self._post(payload)
            except httpx.TransportError as e:
                if attempt >= MAX_ATTEMPTS:
                    raise RuntimeError(f"Vision API request failed: {e}") from e
                self.logger.warning(f"Vision API request failed (attempt {attempt}/{MAX_ATTEMPTS}): {e}")
            else:
                if response.status_code == 200:
                    return response
                if response.status_code != 429:
                    self.logger.error(f"Vision API error {response.status_code}: {response.text}")
                    raise RuntimeError(f"Vision API failed ({response.status_code}): {response.text}")
                if attempt >= MAX_ATTEMPTS:
                    raise RateLimitedError("Vision API rate limit exceeded",
                                           details={"attempts": attempt})
                self.logger.warning(f"Vision API rate limited (attempt {attempt}/{MAX_ATTEMPTS})")

            await self.sleep(float(attempt))
            attempt += 1

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Parsely",
            "Content-Type": "application/json",
        }
        url = f"{OPENROUTER_BASE_URL}/chat/completions"
        if self.client is not None:
            return await self.client.post(url, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, headers=headers, json=payload)
