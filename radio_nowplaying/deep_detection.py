"""
Audio ad detection (Tier 3) for Radio Now Playing

On-demand only; never part of the polling path.

1. Capture a fixed window (10s) of bytes from the live stream
2. Align to the first MPEG/ADTS frame sync and, when ffmpeg is available,
   decode to a clean 16 kHz mono PCM WAV
3. Transcribe the sample (speech-to-text)
4. Ask the LLM whether the transcription is an advertisement

Any failure along the way yields a negative, zero-confidence verdict.
"""

import io
import logging
import shutil
import subprocess
import time
import wave
from dataclasses import dataclass
from typing import Optional

import openai
import requests

from radio_nowplaying.models import AdVerdict
from radio_nowplaying.ad_detection import TIER_AUDIO
from radio_nowplaying.settings import get_openai_api_key
from radio_nowplaying.integrations.transcription import transcribe_audio
from radio_nowplaying.integrations.ad_classifier import (
    send_classification_request,
    parse_classification_response,
)

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SECONDS = 10
CONNECT_TIMEOUT = 5
CHUNK_SIZE = 8192

PCM_SAMPLE_RATE = 16000
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH = 2  # s16le

STREAM_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Icy-MetaData": "0",
}

# Upload file extension by stream content type (no ffmpeg available)
CONTENT_TYPE_EXTENSIONS = {
    'audio/mpeg': 'mp3',
    'audio/mp3': 'mp3',
    'audio/aac': 'aac',
    'audio/aacp': 'aac',
    'audio/x-aac': 'aac',
    'audio/ogg': 'ogg',
    'application/ogg': 'ogg',
}


class AudioCaptureError(Exception):
    """Raised when no usable audio could be captured from a stream"""
    pass


@dataclass
class DeepDetectionResult:
    """Tier 3 outcome: the verdict plus what it was based on"""
    verdict: AdVerdict
    transcription: str = ''
    sample_bytes: int = 0
    error: Optional[str] = None

    def to_dict(self):
        result = self.verdict.to_dict()
        result['transcription'] = self.transcription
        result['sampleBytes'] = self.sample_bytes
        if self.error:
            result['error'] = self.error
        return result


def inconclusive(reason, transcription='', sample_bytes=0):
    """Negative, zero-confidence Tier 3 result"""
    return DeepDetectionResult(
        verdict=AdVerdict(is_ad=False, confidence=0.0, reason=reason, tier=TIER_AUDIO),
        transcription=transcription,
        sample_bytes=sample_bytes,
        error=reason,
    )


def capture_stream_sample(stream_url, seconds=DEFAULT_SAMPLE_SECONDS, clock=time.monotonic):
    """Buffer raw bytes from a live stream for a fixed time window

    Args:
        stream_url: HTTP(S) audio stream URL
        seconds: Capture window in seconds

    Returns:
        (audio_bytes, content_type) tuple

    Raises:
        AudioCaptureError: If the stream cannot be opened or sends nothing
    """
    buffer = bytearray()
    deadline = clock() + seconds

    try:
        with requests.get(stream_url, headers=STREAM_HEADERS, stream=True,
                          timeout=(CONNECT_TIMEOUT, seconds)) as response:
            response.raise_for_status()
            content_type = response.headers.get('content-type', '').split(';')[0].strip().lower()

            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    buffer.extend(chunk)
                if clock() >= deadline:
                    break
    except requests.exceptions.RequestException as e:
        raise AudioCaptureError(f"Could not read stream {stream_url}: {e}") from e

    if not buffer:
        raise AudioCaptureError(f"Stream {stream_url} sent no audio")

    logger.info(f"Captured {len(buffer)} bytes ({seconds}s) from {stream_url}")
    return bytes(buffer), content_type


def align_to_frame(data):
    """Drop leading bytes up to the first MPEG/ADTS frame sync (0xFFEx)

    Returns the data unchanged when no sync word is found.
    """
    for i in range(len(data) - 1):
        if data[i] == 0xFF and (data[i + 1] & 0xE0) == 0xE0:
            return data[i:]
    return data


def pcm_to_wav(pcm, sample_rate=PCM_SAMPLE_RATE, channels=PCM_CHANNELS):
    """Wrap raw s16le PCM in a WAV container"""
    output = io.BytesIO()
    with wave.open(output, 'wb') as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(PCM_SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return output.getvalue()


def build_ffmpeg_command(ffmpeg_path='ffmpeg'):
    """FFmpeg command that decodes stdin to 16 kHz mono s16le on stdout"""
    return [
        ffmpeg_path,
        '-hide_banner',
        '-loglevel', 'error',
        '-nostdin',
        '-i', 'pipe:0',
        '-vn',
        '-acodec', 'pcm_s16le',
        '-ar', str(PCM_SAMPLE_RATE),
        '-ac', str(PCM_CHANNELS),
        '-f', 's16le',
        'pipe:1',
    ]


def decode_to_wav(audio_bytes, timeout=30):
    """Decode a compressed audio window to WAV with ffmpeg

    Returns:
        WAV bytes, or None when ffmpeg is not installed or decoding failed
    """
    ffmpeg_path = shutil.which('ffmpeg')
    if not ffmpeg_path:
        logger.debug("ffmpeg not found in PATH, sending raw stream bytes")
        return None

    try:
        process = subprocess.run(
            build_ffmpeg_command(ffmpeg_path),
            input=audio_bytes,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"ffmpeg decode failed: {e}")
        return None

    if process.returncode != 0 or not process.stdout:
        stderr = process.stderr.decode('utf-8', errors='replace').strip()
        logger.warning(f"ffmpeg decode failed (exit {process.returncode}): {stderr[:200]}")
        return None

    return pcm_to_wav(process.stdout)


def prepare_sample(audio_bytes, content_type):
    """Turn a captured window into (bytes, upload filename)"""
    aligned = align_to_frame(audio_bytes)
    wav = decode_to_wav(aligned)
    if wav:
        return wav, 'sample.wav'
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type, 'mp3')
    return aligned, f"sample.{extension}"


def detect_ad_from_stream(stream_url, settings=None, api_key=None):
    """Run Tier 3 against a live stream

    Args:
        stream_url: Stream to sample
        settings: Settings dict (ad_detection section is used)
        api_key: Overrides the configured OpenAI key

    Returns:
        DeepDetectionResult (never raises for capture/transcription/LLM errors)
    """
    config = (settings or {}).get('ad_detection', {})
    api_key = api_key or get_openai_api_key(settings)

    if not api_key:
        return inconclusive("Audio ad detection is not configured (no OpenAI API key)")

    if not stream_url:
        return inconclusive("No stream URL to sample")

    seconds = config.get('sample_seconds', DEFAULT_SAMPLE_SECONDS)
    timeout = config.get('timeout_seconds', 30)

    try:
        audio_bytes, content_type = capture_stream_sample(stream_url, seconds=seconds)
    except AudioCaptureError as e:
        logger.warning(str(e))
        return inconclusive(str(e))

    sample, filename = prepare_sample(audio_bytes, content_type)

    try:
        transcription = transcribe_audio(
            sample,
            api_key,
            filename=filename,
            model=config.get('transcription_model', 'whisper-1'),
            language=config.get('language', 'en'),
            timeout=timeout,
        )
    except (openai.OpenAIError, ValueError) as e:
        logger.error(f"Transcription failed for {stream_url}: {e}")
        return inconclusive(f"Transcription failed: {e}", sample_bytes=len(sample))

    if not transcription:
        return inconclusive("Transcription was empty", sample_bytes=len(sample))

    try:
        response = send_classification_request(
            transcription,
            api_key,
            model=config.get('model'),
            api_url=config.get('api_url') or 'https://api.openai.com/v1/chat/completions',
            timeout=timeout,
        )
        parsed = parse_classification_response(response)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"LLM ad classification failed for {stream_url}: {e}")
        return inconclusive(f"Classification failed: {e}", transcription, len(sample))

    verdict = AdVerdict(
        is_ad=parsed['isAd'],
        confidence=parsed['confidence'],
        category=parsed['category'],
        brand=parsed['brand'],
        reason=f"Audio transcription classified by {config.get('model') or 'LLM'}",
        tier=TIER_AUDIO,
    )
    logger.info(f"Audio ad detection for {stream_url}: isAd={verdict.is_ad} "
                f"confidence={verdict.confidence:.2f} brand={verdict.brand}")

    return DeepDetectionResult(verdict=verdict, transcription=transcription, sample_bytes=len(sample))
