"""Client for the OpenAI-compatible AI gateway used for transcription and analysis."""

import base64
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from app.core.config import settings
from app.core.exceptions import (
    QuotaExceededError,
    RateLimitedError,
    TranscriptionError,
    UpstreamUnavailableError,
)
from app.models.analysis import AnalysisMode, AudioFormat

logger = logging.getLogger(__name__)

TRANSCRIPTION_PROMPT = (
    "You are an audio transcription assistant. Transcribe the audio content "
    "accurately and completely. Only output the transcription text, nothing else."
)

ANALYSIS_PROMPT = """You are an advanced AI security analyst specializing in detecting fraudulent communications, scam calls, and AI-generated voices. Your task is to analyze transcribed audio and identify potential threats.

For each analysis, you MUST respond with a JSON object containing:
{
  "riskScore": number (0-100, where 0 is completely safe and 100 is definitely a scam),
  "status": "safe" | "suspicious" | "danger",
  "isAiGenerated": boolean,
  "confidenceScore": number (0-1, your confidence in the assessment),
  "summary": string (2-3 sentence summary of your findings),
  "threats": [
    {
      "threatType": string (e.g., "Urgency Pressure", "Authority Claim", "Identity Request", "Prize Scam", "AI Voice Detected"),
      "description": string (detailed explanation),
      "severity": "low" | "medium" | "high",
      "confidence": number (0-1),
      "recommendation": string (what the user should do),
      "excerpt": string (the exact words from the transcription that triggered this threat, if any)
    }
  ]
}

Key indicators to look for:
1. Urgency/Pressure tactics: "Act now", "Limited time", "Immediate action required"
2. Authority impersonation: Claims to be from banks, government, tech support, tax agencies
3. Requests for sensitive info: SSN, bank details, passwords, credit card numbers
4. Prize/lottery scams: "You've won", "Selected for reward", "Claim your prize"
5. Threat-based manipulation: Account suspension, legal action, arrest threats
6. AI voice indicators: Unnatural cadence, robotic tone mentions, synthetic quality
7. Suspicious payment requests: Gift cards, wire transfers, cryptocurrency
8. Callback scams: Requests to call unfamiliar numbers

Be thorough but avoid false positives. Legitimate business calls may mention accounts or verification but won't pressure or threaten."""


def build_analysis_prompt(transcription: str, mode: AnalysisMode) -> str:
    """Build the user prompt for an analysis call."""
    if mode == AnalysisMode.LIVE:
        return (
            "Analyze this live audio transcription segment for potential scam "
            f'indicators. Be quick but thorough:\n\n"{transcription}"\n\n'
            "Respond with the JSON analysis."
        )
    return (
        "Analyze the following transcription from an audio recording and provide "
        f'a comprehensive threat assessment:\n\n"{transcription}"\n\n'
        "Respond with the JSON analysis."
    )


class AIGatewayClient:
    """
    Transcription and analysis collaborator backed by a chat-completions gateway.

    Status 429 and 402 are reported as RateLimitedError and QuotaExceededError;
    every other transport or status failure is UpstreamUnavailableError.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transcription_model: str | None = None,
        analysis_model: str | None = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: Gateway API key (defaults to settings)
            base_url: Gateway base URL (defaults to settings)
            transcription_model: Model used for transcription
            analysis_model: Model used for threat analysis
            client: Preconfigured AsyncOpenAI client (optional)
        """
        self.transcription_model = transcription_model or settings.transcription_model
        self.analysis_model = analysis_model or settings.analysis_model
        self.client = client or AsyncOpenAI(
            api_key=api_key or settings.ai_gateway_api_key or "missing-key",
            base_url=base_url or settings.ai_gateway_url,
        )

    async def transcribe(self, audio: bytes, audio_format: AudioFormat) -> str:
        """
        Transcribe audio.

        Args:
            audio: Raw audio bytes
            audio_format: Declared container format

        Returns:
            Transcript text

        Raises:
            TranscriptionError: If the gateway returned no transcript
            UpstreamError: If the gateway call failed
        """
        encoded = base64.b64encode(audio).decode("ascii")
        messages = [
            {"role": "system", "content": TRANSCRIPTION_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Please transcribe this audio file accurately:"},
                    {
                        "type": "input_audio",
                        "input_audio": {"data": encoded, "format": audio_format.value},
                    },
                ],
            },
        ]

        content = await self._complete(
            model=self.transcription_model,
            messages=messages,
            temperature=settings.transcription_temperature,
            stage="transcription",
        )
        transcription = (content or "").strip()
        if not transcription:
            raise TranscriptionError("No transcription returned")
        return transcription

    async def analyze(self, transcription: str, mode: AnalysisMode = AnalysisMode.ANALYZE) -> str:
        """
        Request a threat assessment.

        Args:
            transcription: Transcript to assess
            mode: analyze for full assessments, live for the faster path

        Returns:
            Raw model reply, expected to contain a JSON object

        Raises:
            UpstreamError: If the gateway call failed or returned nothing
        """
        messages = [
            {"role": "system", "content": ANALYSIS_PROMPT},
            {"role": "user", "content": build_analysis_prompt(transcription, mode)},
        ]
        content = await self._complete(
            model=self.analysis_model,
            messages=messages,
            temperature=settings.analysis_temperature,
            stage="analysis",
        )
        if not content or not content.strip():
            raise UpstreamUnavailableError("No response from AI", stage="analysis")
        return content

    async def _complete(
        self, model: str, messages: list[dict], temperature: float, stage: str
    ) -> str | None:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            if e.status_code == 429:
                logger.warning(f"AI gateway rate limited the {stage} call")
                raise RateLimitedError(stage=stage) from e
            if e.status_code == 402:
                logger.warning(f"AI gateway quota exhausted during {stage}")
                raise QuotaExceededError(stage=stage) from e
            logger.error(f"AI gateway {stage} error: {e.status_code} {e.message}")
            raise UpstreamUnavailableError(
                f"AI gateway error during {stage}: {e.status_code}", stage=stage
            ) from e
        except openai.APIError as e:
            logger.error(f"AI gateway {stage} request failed: {e}")
            raise UpstreamUnavailableError(f"AI gateway unreachable during {stage}", stage=stage) from e

        if not response.choices:
            return None
        return response.choices[0].message.content
