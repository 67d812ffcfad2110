"""Image service — turns a homeowner's photo + style prompt into an "after" image.

One capability, one adapter per provider:
  - GeminiTransformer: google-genai SDK, image comes back inline and is
    stored through storage_service.
  - RunwayTransformer: RunwayML REST API, task is created then polled
    until it succeeds, fails or times out; Runway hosts the output.

IMAGE_PROVIDER picks the adapter (gemini | runway).
"""

import base64
import logging
import time

import httpx
import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from renovision.exceptions import ProviderError
from renovision.services import storage_service

logger = logging.getLogger(__name__)


class ImageTransformer:
    """Input image + prompt -> URL of the generated image, or ProviderError."""

    name = None

    def transform(self, image_bytes, mime_type, prompt):
        raise NotImplementedError


class GeminiTransformer(ImageTransformer):
    name = "gemini"

    PROMPT_TEMPLATE = (
        "Edit this photo so the space is {prompt}. Keep the same camera angle, "
        "room layout, windows and proportions. Photorealistic, natural lighting."
    )

    def __init__(self, api_key, model):
        if not api_key:
            raise ProviderError("GEMINI_API_KEY is not configured.")
        self.client = genai.Client(api_key=api_key)
        self.model = model

    def transform(self, image_bytes, mime_type, prompt):
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    self.PROMPT_TEMPLATE.format(prompt=prompt),
                    genai_types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                ],
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error(f"Gemini generation failed: {e}")
            raise ProviderError("Image generation failed", details=str(e)) from e

        for candidate in response.candidates or []:
            content = candidate.content
            for part in (content.parts if content else None) or []:
                if part.inline_data is not None and part.inline_data.data:
                    return storage_service.save_generated(
                        part.inline_data.data,
                        part.inline_data.mime_type or "image/png",
                    )

        feedback = getattr(response, "prompt_feedback", None)
        raise ProviderError(
            "Image generation failed",
            details=str(feedback) if feedback else "Gemini returned no image.",
        )


class RunwayTransformer(ImageTransformer):
    name = "runway"

    TERMINAL_FAILURES = {"FAILED", "CANCELLED"}

    def __init__(self, api_key, base_url, api_version, model, timeout,
                 poll_interval=5, sleep=time.sleep):
        if not api_key:
            raise ProviderError("RUNWAYML_API_KEY is not configured.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.model = model
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.sleep = sleep

    @property
    def headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Runway-Version": self.api_version,
            "Content-Type": "application/json",
        }

    def transform(self, image_bytes, mime_type, prompt):
        data_uri = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        payload = {
            "model": self.model,
            "ratio": "1024:1024",
            "promptText": f"@original {prompt}",
            "referenceImages": [{"uri": data_uri, "tag": "original"}],
        }

        try:
            resp = requests.post(
                f"{self.base_url}/v1/text_to_image",
                headers=self.headers,
                json=payload,
                timeout=30,
            )
            resp.raise_for_status()
            task_id = resp.json()["id"]
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error(f"Runway task creation failed: {e}")
            raise ProviderError("Image generation failed", details=str(e)) from e

        return self._wait_for_output(task_id)

    def _wait_for_output(self, task_id):
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                resp = requests.get(
                    f"{self.base_url}/v1/tasks/{task_id}",
                    headers=self.headers,
                    timeout=30,
                )
                resp.raise_for_status()
                task = resp.json()
            except (requests.RequestException, ValueError) as e:
                logger.error(f"Runway task {task_id} poll failed: {e}")
                raise ProviderError("Image generation failed", details=str(e)) from e

            status = task.get("status")
            if status == "SUCCEEDED":
                output = task.get("output") or []
                if not output:
                    raise ProviderError("Image generation failed", details="Runway returned no output.")
                return output[0]
            if status in self.TERMINAL_FAILURES:
                raise ProviderError(
                    "Image generation failed",
                    details={
                        "status": status,
                        "failure": task.get("failure"),
                        "failureCode": task.get("failureCode"),
                    },
                )
            if time.monotonic() >= deadline:
                raise ProviderError(
                    "Image generation timed out",
                    details=f"Runway task {task_id} still {status} after {self.timeout}s",
                )
            self.sleep(self.poll_interval)


def get_image_transformer(config):
    """Build the adapter named by IMAGE_PROVIDER."""
    provider = (config.get("IMAGE_PROVIDER") or "gemini").lower()

    if provider == "gemini":
        return GeminiTransformer(
            api_key=config.get("GEMINI_API_KEY"),
            model=config.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        )
    if provider == "runway":
        return RunwayTransformer(
            api_key=config.get("RUNWAYML_API_KEY"),
            base_url=config.get("RUNWAY_API_URL", "https://api.dev.runwayml.com"),
            api_version=config.get("RUNWAY_API_VERSION", "2024-11-06"),
            model=config.get("RUNWAY_MODEL", "gen4_image"),
            timeout=config.get("IMAGE_GENERATION_TIMEOUT", 180),
        )

    raise ProviderError(f"Unknown IMAGE_PROVIDER '{provider}'.")
