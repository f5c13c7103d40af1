"""
Vision-language model OCR engines.

Each page is rendered at high DPI, cleaned up, capped in size and sent to a
multimodal model with a page-role-specific system instruction: the first
page of every student block is asked to carry a Name/Roll header, other
pages are asked for raw text only.

Two flavours share the page loop:
- OpenAIVisionEngine: OpenAI chat completions, ordered model fallback
- GeminiVisionEngine: optional OCR relay, then the Gemini REST API
"""

from __future__ import annotations

from abc import abstractmethod
from typing import List, Optional, Tuple

import numpy as np
import requests
from openai import OpenAI, APIError, NotFoundError

from ..config import Config
from ..exceptions import OCREngineError
from ..models import OcrNamingContext, OcrResult
from ..utils.image_utils import load_image, prepare_base, sharpen, png_data_uri_with_cap
from ..utils.text_utils import sanitize
from .base import OCREngine
from .prompts import USER_INSTRUCTION, build_system_prompt
from .rasterizer import PageRasterizer, RasterPage, remove_quietly


class VisionLanguageEngine(OCREngine):
    """Shared page loop for multimodal-model OCR."""

    name = "llm-vision"

    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        ocr = self.config.ocr
        page_texts: List[str] = []

        with PageRasterizer(
            pdf_bytes,
            dpi=ocr.llm_dpi,
            fmt="png",
            scratch_root=ocr.scratch_root(),
            prefix=self.name,
        ) as pages:
            for page in pages:
                try:
                    text, last_error = self.read_page(page, naming)
                finally:
                    remove_quietly(page.path)

                page_texts.append(text)
                if text:
                    self.log_info("Page OCR success", page=page.index + 1, chars=len(text))
                else:
                    self.log_warning(
                        "No meaningful text from page",
                        page=page.index + 1,
                        last_error=last_error or "-",
                    )

        return OcrResult.from_pages(self.name, page_texts)

    def read_page(self, page: RasterPage, naming: OcrNamingContext) -> Tuple[str, str]:
        """Returns (sanitized text, last error message)."""
        image = load_image(page.path)
        if image is None:
            raise OCREngineError("Unreadable page image", engine=self.name, page_number=page.index + 1)

        data_uri = self.prepare_data_uri(image)
        system_prompt = build_system_prompt(page.index, naming)
        return self.recognize(data_uri, system_prompt, page.index)

    def prepare_data_uri(self, image: np.ndarray) -> str:
        """Clamp width, grayscale, normalize, denoise, sharpen, then cap the payload."""
        ocr = self.config.ocr
        width = image.shape[1] or ocr.llm_default_width
        target = max(min(width, ocr.llm_max_width), ocr.llm_min_width)
        prepared = sharpen(prepare_base(image, target))
        data_uri, final_width = png_data_uri_with_cap(prepared, ocr.data_uri_cap_bytes)
        if final_width != target:
            self.log_debug("Downscaled page to fit request cap", width=final_width)
        return data_uri

    def accept(self, raw: Optional[str]) -> str:
        """Sanitized text if it has at least min_page_chars characters, else ''."""
        text = sanitize(raw or "")
        return text if len(text) >= self.config.ocr.min_page_chars else ""

    @abstractmethod
    def recognize(self, data_uri: str, system_prompt: str, page_index: int) -> Tuple[str, str]:
        """Send one page to the provider; returns (accepted text or '', last error)."""


class OpenAIVisionEngine(VisionLanguageEngine):
    """OCR through OpenAI vision models, trying each candidate model in order."""

    name = "openai-ocr"

    def __init__(self, config: Optional[Config] = None, client: Optional[OpenAI] = None):
        super().__init__(config)
        self._client = client

    def is_available(self) -> bool:
        return self._client is not None or bool(self.config.ai.openai_api_key)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            ai = self.config.ai
            self._client = OpenAI(
                api_key=ai.openai_api_key,
                base_url=ai.get_normalized_base_url(),
                timeout=ai.timeout_sec,
                max_retries=0,
            )
        return self._client

    def recognize(self, data_uri: str, system_prompt: str, page_index: int) -> Tuple[str, str]:
        ai = self.config.ai
        last_error = ""

        for model in ai.model_candidates:
            self.log_debug("Sending page to OpenAI", page=page_index + 1, model=model)
            try:
                completion = self.client.chat.completions.create(
                    model=model,
                    temperature=0,
                    max_tokens=ai.max_tokens,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": USER_INSTRUCTION},
                                {"type": "image_url", "image_url": {"url": data_uri}},
                            ],
                        },
                    ],
                )
            except NotFoundError as e:
                # Unknown model id: the next candidate may exist
                last_error = f"{model}: {e}"
                self.log_warning("Model not available", model=model)
                continue
            except APIError as e:
                last_error = f"{model}: {e}"
                self.log_warning("OpenAI request failed", model=model, error=e)
                break

            text = self.accept(completion.choices[0].message.content if completion.choices else "")
            if text:
                return text, ""

        return "", last_error


class GeminiVisionEngine(VisionLanguageEngine):
    """OCR through a Gemini OCR relay when configured, else the Gemini REST API."""

    name = "gemini-ocr"

    def __init__(self, config: Optional[Config] = None, session: Optional[requests.Session] = None):
        super().__init__(config)
        self.session = session or requests.Session()

    def is_available(self) -> bool:
        ai = self.config.ai
        return bool(ai.relay_base_url or ai.google_api_key)

    def recognize(self, data_uri: str, system_prompt: str, page_index: int) -> Tuple[str, str]:
        ai = self.config.ai
        last_error = ""

        if ai.relay_base_url:
            try:
                text = self.accept(self._call_relay(data_uri, system_prompt))
                if text:
                    return text, ""
                self.log_warning("Gemini relay returned no meaningful text", page=page_index + 1)
            except requests.RequestException as e:
                last_error = f"relay: {e}"
                self.log_warning("Gemini relay request failed", error=e)

        if not ai.google_api_key:
            return "", last_error or "GOOGLE_API_KEY missing"

        try:
            text = self.accept(self._call_gemini(data_uri, system_prompt))
            if text:
                return text, ""
            self.log_warning("Gemini returned no meaningful text", page=page_index + 1)
        except requests.RequestException as e:
            last_error = f"gemini: {e}"
            self.log_warning("Gemini request failed", model=ai.gemini_model, error=e)

        return "", last_error

    def _call_relay(self, data_uri: str, system_prompt: str) -> str:
        ai = self.config.ai
        url = f"{ai.relay_base_url.rstrip('/')}{ai.relay_path}"
        response = self.session.post(
            url,
            json={"image": data_uri, "prompt": system_prompt, "raw_text_only": True},
            headers={"Authorization": f"Bearer {ai.relay_api_key}"},
            timeout=ai.timeout_sec,
        )
        response.raise_for_status()
        payload = response.json()
        for key in ("text", "result", "output"):
            if isinstance(payload.get(key), str):
                return payload[key]
        return gemini_candidate_text(payload)

    def _call_gemini(self, data_uri: str, system_prompt: str) -> str:
        ai = self.config.ai
        url = f"{ai.gemini_base_url.rstrip('/')}/models/{ai.gemini_model}:generateContent"
        encoded = data_uri.split(",", 1)[1] if "," in data_uri else ""
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": f"{system_prompt}\nReturn raw text only."},
                        {"inline_data": {"mime_type": "image/png", "data": encoded.strip()}},
                    ],
                }
            ]
        }
        response = self.session.post(
            url,
            params={"key": ai.google_api_key},
            json=body,
            timeout=ai.timeout_sec,
        )
        response.raise_for_status()
        return gemini_candidate_text(response.json())


def gemini_candidate_text(payload: dict) -> str:
    """Concatenate the text parts of the first candidate in a generateContent response."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict) and p.get("text"))
