"""Speech-to-text for stream audio samples (OpenAI audio transcriptions)."""

import io
import logging
from typing import Optional

import openai

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "whisper-1"
DEFAULT_LANGUAGE = "en"


def get_openai_client(api_key: str, timeout: Optional[float] = None) -> openai.OpenAI:
    if api_key is None or not api_key.strip():
        raise ValueError("OpenAI API key is not configured")
    if timeout is not None:
        return openai.OpenAI(api_key=api_key, timeout=timeout)
    return openai.OpenAI(api_key=api_key)


def transcribe_audio(
    audio_bytes: bytes,
    api_key: str,
    filename: str = "sample.wav",
    model: str = DEFAULT_MODEL,
    language: str = DEFAULT_LANGUAGE,
    timeout: Optional[float] = None,
) -> str:
    """
    Transcribe an audio sample.

    Args:
        audio_bytes: Encoded audio (WAV, MP3 or AAC)
        api_key: OpenAI API key
        filename: Name sent with the upload; its extension tells the API the format
        model: Transcription model
        language: ISO-639-1 language hint
        timeout: Request timeout in seconds

    Returns:
        Transcribed text (may be empty for silence/music)

    Raises:
        ValueError: If the key is missing or the sample is empty
        openai.OpenAIError: If the API call fails
    """
    if not audio_bytes:
        raise ValueError("Audio sample is empty")

    client = get_openai_client(api_key, timeout=timeout)

    audio_file = io.BytesIO(audio_bytes)
    audio_file.name = filename

    logger.info(f"Transcribing {len(audio_bytes)} bytes of audio with {model}")
    transcription = client.audio.transcriptions.create(
        model=model,
        file=audio_file,
        response_format="text",
        language=language,
    )

    # response_format="text" returns a plain string
    text = transcription if isinstance(transcription, str) else getattr(transcription, 'text', '')
    text = (text or '').strip()
    logger.debug(f"Transcription: {text[:200]}")
    return text
