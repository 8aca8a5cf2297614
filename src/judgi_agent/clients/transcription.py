"""Asynchronous speech-to-text client: upload, submit, poll."""

from __future__ import annotations

import asyncio

import httpx
import structlog
from pydantic import BaseModel

from judgi_agent.clients.http import HttpProvider
from judgi_agent.clients.retry import RetryingClient, SleepFn
from judgi_agent.config import TranscriptionConfig
from judgi_agent.errors import TranscriptionFailedError

logger = structlog.get_logger(__name__)


class _UploadResponse(BaseModel):
    upload_url: str


class _SubmitResponse(BaseModel):
    id: str


class TranscriptStatus(BaseModel):
    id: str | None = None
    status: str
    text: str | None = None
    error: str | None = None


class TranscriptionClient(HttpProvider):
    """Transcribes audio with per-step rate-limit retry.

    Upload, submission and each poll run through the retrying client on
    their own, so a key rotation while polling never repeats the upload.
    """

    provider = "transcription"

    def __init__(
        self,
        retrying: RetryingClient,
        config: TranscriptionConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config or TranscriptionConfig()
        super().__init__(http_client=http_client, timeout_seconds=self.config.timeout_seconds)
        self.retrying = retrying
        self._sleep = sleep

    async def transcribe(self, audio: bytes) -> str:
        upload_url = await self.retrying.call(lambda key: self.upload(audio, key))
        transcript_id = await self.retrying.call(lambda key: self.submit(upload_url, key))
        logger.info("transcript_submitted", transcript_id=transcript_id)
        return await self.wait_for_text(transcript_id)

    async def wait_for_text(self, transcript_id: str) -> str:
        polls = 0
        while True:
            polls += 1
            status = await self.retrying.call(lambda key: self.fetch_status(transcript_id, key))
            if status.status == "completed":
                logger.info("transcript_completed", transcript_id=transcript_id, polls=polls)
                return status.text or ""
            if status.status == "error":
                logger.error(
                    "transcript_failed", transcript_id=transcript_id, error=status.error
                )
                raise TranscriptionFailedError(
                    status.error or "unknown error", transcript_id=transcript_id
                )
            logger.debug("transcript_pending", transcript_id=transcript_id, status=status.status)
            await self._sleep(self.config.poll_interval_seconds)

    async def upload(self, audio: bytes, key: str) -> str:
        response = await self._request(
            "POST",
            f"{self.config.base_url}/upload",
            content=audio,
            headers={"Authorization": key, "Content-Type": "application/octet-stream"},
        )
        return self._decode(response, _UploadResponse).upload_url

    async def submit(self, audio_url: str, key: str) -> str:
        response = await self._request(
            "POST",
            f"{self.config.base_url}/transcript",
            json={"audio_url": audio_url},
            headers={"Authorization": key},
        )
        return self._decode(response, _SubmitResponse).id

    async def fetch_status(self, transcript_id: str, key: str) -> TranscriptStatus:
        response = await self._request(
            "GET",
            f"{self.config.base_url}/transcript/{transcript_id}",
            headers={"Authorization": key},
        )
        return self._decode(response, TranscriptStatus)
