import json
import logging
import re
from typing import Optional

import requests
from pydantic import ValidationError

import settings
from errors import (
  CredentialInvalidError,
  GenerationParseError,
  UpstreamRejectedError,
  UpstreamUnreachableError,
)
from models import GeneratedProject

logger = logging.getLogger("ai-client")

MODES = ("generate", "refine")

SYSTEM_PROMPT = """
You are a senior frontend engineer. Build a small, professional, accessible, mobile-responsive web project that can be deployed as-is to a static host.

OUTPUT CONTRACT:
- Reply with ONLY one JSON object, no markdown fences, no commentary.
- Shape: {"name": string, "description": string, "files": [{"path": string, "content": string}, ...]}
- "name" is a lowercase, hyphenated repository name (letters, digits and hyphens only, at most 60 chars).
- "description" is one sentence.
- Every "path" is relative to the repository root. Always include index.html and README.md.
- "content" is the full file text, never a diff or a placeholder.
"""

MODE_INSTRUCTIONS = {
  "generate": "Create a new project for this request:",
  "refine": "Produce an improved, more polished version of the project described here, keeping its name stable:",
}


def _extract_json(text: str) -> dict:
  try:
    return json.loads(text)
  except json.JSONDecodeError:
    # Models often wrap the object in ``` fences or prose; take the outermost {...}
    m = re.search(r"\{.*\}", text, flags=re.S)
    if not m:
      logger.warning("Model did not return JSON; raw output: %s", text[:500])
      raise GenerationParseError("Model response did not contain a JSON object")
    try:
      return json.loads(m.group(0))
    except json.JSONDecodeError as e:
      logger.warning("Found JSON-like substring but could not parse it: %s", e)
      raise GenerationParseError(f"Model response was not valid JSON: {e}") from e


def _upstream_message(resp: requests.Response) -> str:
  try:
    body = resp.json()
  except ValueError:
    return (resp.text or "")[:300] or resp.reason or "no body"
  err = body.get("error") if isinstance(body, dict) else None
  if isinstance(err, dict) and err.get("message"):
    return err["message"]
  return str(body)[:300]


class GeminiClient:
  """Generation client for the Gemini ``generateContent`` REST endpoint.

  One request per call and no retries: a failure goes straight back to the
  caller. The whole project is parsed before anything is returned.
  """

  def __init__(self, model: Optional[str] = None, api_base: Optional[str] = None, timeout: Optional[float] = None):
    self.model = model or settings.GEMINI_MODEL
    self.url = f"{(api_base or settings.GEMINI_API_BASE).rstrip('/')}/models/{self.model}:generateContent"
    self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

  def generate_project(self, prompt: str, mode: str = "generate", credential: str = "") -> GeneratedProject:
    if mode not in MODES:
      raise ValueError(f"Unknown generation mode {mode!r}; expected one of {MODES}")
    key = credential or settings.GEMINI_API_KEY
    if not key:
      raise CredentialInvalidError("No Gemini API key configured (set it in Configuration or GEMINI_API_KEY)")

    payload = {
      "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
      "contents": [{"role": "user", "parts": [{"text": f"{MODE_INSTRUCTIONS[mode]}\n\n{prompt}"}]}],
      "generationConfig": {"responseMimeType": "application/json"},
    }
    headers = {"x-goog-api-key": key, "Content-Type": "application/json"}

    logger.info("Requesting %s from %s (%d prompt chars)", mode, self.model, len(prompt))
    try:
      resp = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
    except requests.RequestException as e:
      logger.exception("Gemini request failed")
      raise UpstreamUnreachableError(f"Could not reach Gemini: {e}") from e

    if not resp.ok:
      message = _upstream_message(resp)
      logger.error("Gemini request failed: status=%s body=%s", resp.status_code, message)
      raise UpstreamRejectedError(f"Gemini Error: {message}", status_code=resp.status_code)

    try:
      data = resp.json()
    except ValueError as e:
      raise GenerationParseError("Gemini returned a non-JSON response body") from e

    candidates = data.get("candidates") or []
    if not candidates:
      reason = (data.get("promptFeedback") or {}).get("blockReason")
      raise GenerationParseError(f"Gemini returned no candidates (reason: {reason or 'unknown'})")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts)
    if not text.strip():
      reason = candidates[0].get("finishReason")
      raise GenerationParseError(f"Gemini returned no content (reason: {reason or 'unknown'})")

    raw = _extract_json(text)
    try:
      project = GeneratedProject.model_validate(raw)
    except ValidationError as e:
      logger.warning("Generated project failed validation: %s", e)
      raise GenerationParseError("Model response did not match {name, description, files[]}") from e

    logger.info("Parsed project %s with %d files", project.name, len(project.files))
    return project
