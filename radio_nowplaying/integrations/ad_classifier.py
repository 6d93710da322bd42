"""
LLM ad classifier for Radio Now Playing

Sends a stream transcription to an OpenAI-compatible chat completions
endpoint and parses the model's JSON verdict.
"""

import json
import logging
import time
import requests
from typing import Dict, Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 2
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.1
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


def load_system_prompt() -> str:
    """
    Load the system prompt from the prompts directory.

    Returns:
        System prompt string
    """
    prompt_path = Path(__file__).parent.parent / "prompts" / "ad_classification_system_prompt.txt"

    if not prompt_path.exists():
        logger.warning(f"System prompt file not found at {prompt_path}, using default prompt")
        return get_default_system_prompt()

    try:
        with open(prompt_path, 'r', encoding='utf-8') as f:
            prompt = f.read().strip()
            logger.debug(f"Loaded system prompt from {prompt_path} ({len(prompt)} chars)")
            return prompt
    except OSError as e:
        logger.error(f"Error loading system prompt: {e}")
        return get_default_system_prompt()


def get_default_system_prompt() -> str:
    """
    Returns the default system prompt.

    This is used as a fallback if the prompt file is missing.
    """
    return """You are an advertisement detector for live radio.
You will receive a transcription of a short radio audio sample.

Decide whether it is a commercial. Consider promotional language, calls to
action, prices or deals, brand names, contact information and "sponsored by"
phrasing.

Return ONLY a JSON object in this exact format:
{"isAd": true, "confidence": 0.0, "category": "category or null", "brand": "brand or null"}"""


def send_classification_request(
    transcription: str,
    api_key: str,
    model: Optional[str] = None,
    api_url: str = OPENAI_CHAT_URL,
    timeout: int = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES
) -> Dict[str, Any]:
    """
    Ask the language model whether a transcription is an advertisement.

    Args:
        transcription: Speech-to-text output for the audio sample
        api_key: API key for the chat completions endpoint
        model: Model name (default: gpt-4o)
        api_url: Chat completions URL
        timeout: Request timeout in seconds
        max_retries: Attempts for timeouts and 5xx errors

    Returns:
        API response as dictionary

    Raises:
        ValueError: If API key is missing or rejected
        requests.RequestException: If API call fails after retries
    """
    if not api_key or not api_key.strip():
        raise ValueError("LLM API key is missing or empty")

    if not model:
        model = DEFAULT_MODEL

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    payload = {
        "model": model,
        "messages": [
            {
                "role": "system",
                "content": load_system_prompt()
            },
            {
                "role": "user",
                "content": f'Transcription: "{transcription}"'
            }
        ],
        "response_format": {"type": "json_object"},
        "temperature": DEFAULT_TEMPERATURE,
    }

    last_exception = None
    for attempt in range(max_retries):
        try:
            logger.info(f"Sending ad classification request (attempt {attempt + 1}/{max_retries})")

            response = requests.post(api_url, headers=headers, json=payload, timeout=timeout)
            response.raise_for_status()
            result = response.json()

            usage = result.get('usage', {})
            if usage:
                logger.debug(f"Ad classification tokens - "
                             f"prompt: {usage.get('prompt_tokens', 0)}, "
                             f"completion: {usage.get('completion_tokens', 0)}")

            return result

        except requests.Timeout as e:
            last_exception = e
            logger.warning(f"Ad classification timeout (attempt {attempt + 1}/{max_retries})")
            if attempt < max_retries - 1:
                time.sleep(2 ** attempt)

        except requests.HTTPError as e:
            last_exception = e
            status_code = e.response.status_code if e.response is not None else 0

            if status_code == 401:
                raise ValueError("LLM API authentication failed. Check your API key.") from e

            if status_code == 429:
                logger.error("LLM API rate limit exceeded")
                raise requests.RequestException("Rate limit exceeded. Please try again later.") from e

            if status_code >= 500:
                logger.warning(f"LLM API server error (attempt {attempt + 1}/{max_retries}): {status_code}")
                if attempt < max_retries - 1:
                    time.sleep(2 ** attempt)
            else:
                raise

        except requests.RequestException as e:
            last_exception = e
            logger.warning(f"Ad classification request failed (attempt {attempt + 1}/{max_retries}): {e}")
            if attempt < max_retries - 1:
                time.sleep(2 ** attempt)

    logger.error(f"Ad classification failed after {max_retries} attempts")
    raise requests.RequestException(
        f"Failed to communicate with LLM API after {max_retries} attempts"
    ) from last_exception


def clamp_confidence(value) -> float:
    """Coerce a model-supplied confidence into [0, 1] (non-numbers -> 0)"""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    return max(0.0, min(1.0, confidence))


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return bool(value)


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() in ('null', 'none', 'n/a'):
        return None
    return value


def parse_classification_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the verdict from a chat completions response.

    Args:
        response: API response dictionary

    Returns:
        Dict with isAd (bool), confidence (float in [0, 1]),
        category (str or None), brand (str or None)

    Raises:
        ValueError: If the response or its JSON content is malformed
    """
    try:
        if 'choices' not in response or not response['choices']:
            raise ValueError("Invalid response: No choices in API response")

        content = response['choices'][0]['message']['content'] or ''
        if not isinstance(content, str):
            raise ValueError(f"Invalid response: message content is {type(content).__name__}, not text")
        content = content.strip()

        # Some models wrap JSON in a markdown fence even in json mode
        if content.startswith('```'):
            content = content.strip('`')
            if content.lower().startswith('json'):
                content = content[4:]
            content = content.strip()

        logger.debug(f"Ad classification content: {content[:200]}")

        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("Invalid JSON response: not an object")

    except (KeyError, IndexError, TypeError, AttributeError, json.JSONDecodeError) as e:
        logger.error(f"Error parsing ad classification response: {e}")
        raise ValueError(f"Failed to parse ad classification response: {e}") from e

    return {
        'isAd': _as_bool(data.get('isAd', False)),
        'confidence': clamp_confidence(data.get('confidence', 0)),
        'category': _optional_str(data.get('category')),
        'brand': _optional_str(data.get('brand')),
    }
