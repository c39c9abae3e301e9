"""
OpenAI-compatible chat completion calls against a provider endpoint.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from .errors import TransportError
from .models import Completion, RequestHeaders

__all__ = ["InferenceClient"]


def _first_content(payload: Dict[str, Any]) -> Optional[str]:
    choices = payload.get("choices") or []
    if not isinstance(choices, list):
        raise TransportError(f"Unexpected choices in completion payload: {choices!r}")
    if not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if message is None:
        return None
    if not isinstance(message, dict):
        raise TransportError(f"Unexpected message in completion payload: {message!r}")
    content = message.get("content")
    return content if content is None else str(content)


class InferenceClient:
    """
    Sends one user message to a provider and returns its answer.

    Failures are not retried here; the caller owns the retry policy because a
    retry needs freshly issued headers.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 120.0,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def complete(
        self,
        endpoint: str,
        model: str,
        prompt_text: str,
        headers: RequestHeaders,
    ) -> Completion:
        url = f"{endpoint.rstrip('/')}/chat/completions"
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt_text}],
        }
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers)

        logging.info("Sending chat completion request for %s to %s", model, url)
        try:
            response = self.session.post(
                url, json=body, headers=request_headers, timeout=self.timeout
            )
        except requests.Timeout as exc:
            raise TransportError(f"Inference request to {url} timed out") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Inference request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(
                f"Provider responded with {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise TransportError(
                f"Failed to parse JSON from provider at {url}: {response.text}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected completion payload from {url}: {payload!r}")

        completion = Completion(
            content=_first_content(payload),
            correlation_id=str(payload.get("id") or ""),
        )
        logging.info("Received completion %s", completion.correlation_id or "<no id>")
        return completion
