"""Claude-backed narrative summaries for finished runs."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

from visualqa.ai.prompts.summary import SUMMARY_SYSTEM_PROMPT, build_summary_prompt

logger = logging.getLogger(__name__)


class SummaryClient:
    """Turns a run digest into a short prose summary.

    When ``transcript_dir`` is set every request is written there as a JSON
    transcript (prompt, response, error) for later inspection.
    """

    def __init__(
        self,
        model: str = "claude-opus-4-6",
        max_tokens: int = 600,
        transcript_dir: Optional[Path] = None,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError("ANTHROPIC_API_KEY is not set; using the basic summary instead")
        self.client = anthropic.Anthropic(api_key=api_key, timeout=120.0)
        self.model = model
        self.max_tokens = max_tokens
        self.transcript_dir = Path(transcript_dir) if transcript_dir else None

    def summarize(self, digest: dict[str, Any]) -> str:
        """Ask Claude for a summary of ``digest`` and return the text.

        Raises ``anthropic.APIError`` on transport failures and ``ValueError``
        when the model returns no text.
        """
        prompt = build_summary_prompt(json.dumps(digest, indent=2))
        logger.info("Requesting AI summary (model=%s)", self.model)
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SUMMARY_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            self._write_transcript(prompt, error=str(e))
            raise

        text = " ".join(block.text.strip() for block in response.content if getattr(block, "text", None))
        if response.stop_reason == "max_tokens":
            logger.warning("AI summary truncated at %d tokens", self.max_tokens)
        self._write_transcript(prompt, response_text=text)
        if not text:
            raise ValueError("AI summary response contained no text")
        return text

    def _write_transcript(self, prompt: str, response_text: str = "", error: str | None = None) -> None:
        if self.transcript_dir is None:
            return
        path = self.transcript_dir / f"summary_{time.strftime('%Y%m%d_%H%M%S')}.json"
        record = {
            "model": self.model,
            "system": SUMMARY_SYSTEM_PROMPT,
            "prompt": prompt,
            "response": response_text,
            "error": error,
        }
        try:
            self.transcript_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(record, indent=2), encoding="utf-8")
            logger.debug("AI transcript written to %s", path)
        except OSError as e:
            logger.debug("Could not write AI transcript: %s", e)
