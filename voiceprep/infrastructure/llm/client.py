"""
Vertex AI REST client for Gemini scoring and question generation.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""
    
    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.timeout = timeout
        self.session = session or requests.Session()
        self.endpoint = (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
            f"/locations/{location}/publishers/google/models/{model}:generateContent"
        )
        self._credentials = None

    def _token(self) -> str:
        """Return a valid OAuth token, refreshing when expired."""
        if self._credentials is None:
            if self.credentials_json:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_json, scopes=SCOPES
                )
            else:
                self._credentials, _ = google.auth.default(scopes=SCOPES)
        if not self._credentials.valid:
            self._credentials.refresh(google.auth.transport.requests.Request())
        return self._credentials.token

    def generate_content(self,
                         prompt_text: str,
                         temperature: float = 0.0,
                         max_output_tokens: int = MAX_OUTPUT_TOKENS,
                         response_mime_type: Optional[str] = None) -> str:
        """Generate text for a single-turn prompt."""
        config: Dict[str, Any] = {
            "temperature": float(temperature),
            "maxOutputTokens": int(max_output_tokens),
        }
        if response_mime_type:
            config["responseMimeType"] = response_mime_type

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "generationConfig": config,
        }
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Content-Type": "application/json",
        }

        resp = self.session.post(self.endpoint, headers=headers, json=body, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text[:300]}")
        return self._parse_response_text(resp.json())

    @staticmethod
    def _parse_response_text(resp_json: Dict[str, Any]) -> str:
        """Extract candidates[0].content.parts[*].text."""
        for candidate in resp_json.get("candidates") or []:
            parts = (candidate.get("content") or {}).get("parts") or []
            texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
            if texts:
                return "".join(texts)
        raise RuntimeError(f"Vertex response had no text: {json.dumps(resp_json)[:300]}")

    def generate_json(self, prompt: str, temperature: float = 0.0) -> Any:
        """
        Generate a JSON value (object or array) from the model.
        Appends an instruction to respond with JSON only.
        """
        prompt_json = prompt.strip() + "\n\nRespond ONLY with minified JSON."
        logger.debug("Sending JSON prompt to LLM...")
        text = self.generate_content(prompt_json, temperature=temperature,
                                     response_mime_type="application/json")
        logger.debug("Raw LLM output: %s", repr(text))
        return extract_json(text)


def extract_json(text: str) -> Any:
    """
    Parse JSON from model output, tolerating markdown fences and prose.
    
    Raises:
        ValueError: No JSON object or array could be parsed
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    candidates: List[str] = []
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = cleaned.find(open_ch)
        end = cleaned.rfind(close_ch)
        if start != -1 and end > start:
            candidates.append(cleaned[start:end + 1])
    # Prefer whichever structure starts first in the text
    candidates.sort(key=cleaned.find)
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError as e:
            logger.warning("Substring parse failed: %s", e)
    raise ValueError(f"LLM did not return valid JSON: {text[:300]}")
