"""
Settings for Radio Now Playing

Settings are stored in radio_nowplaying_settings.json (working directory by
default). Every key has a default, so a missing file is a valid configuration.
The file only needs to contain the values that differ from DEFAULT_SETTINGS.

Secrets (the OpenAI API key) may also come from the environment.
"""

import copy
import json
import logging
import os

logger = logging.getLogger(__name__)

SETTINGS_FILE = 'radio_nowplaying_settings.json'
SETTINGS_ENV_VAR = 'RADIO_NOWPLAYING_SETTINGS'

DEFAULT_SETTINGS = {
    'database': {
        'file': 'radio_nowplaying.db',
    },
    'now_playing': {
        'default_station': 'kbfb-955',
        'cache_ttl_seconds': 30,
        'metadata_timeout_seconds': 3,
        # False = legacy single "current track" record shared by all stations
        'key_by_station': True,
        # Write api types detected for 'auto' stations back to the database
        'persist_detected_api_type': False,
    },
    'artwork': {
        'timeout_seconds': 2,
        'size': '600x600bb',
    },
    'logos': {
        'base_url': 'https://logo.clearbit.com/',
        'verify': False,
        'timeout_seconds': 2,
    },
    'ad_detection': {
        'openai_api_key': None,
        'api_url': 'https://api.openai.com/v1/chat/completions',
        'model': 'gpt-4o',
        'transcription_model': 'whisper-1',
        'language': 'en',
        'sample_seconds': 10,
        'timeout_seconds': 30,
        'history_days': 30,
    },
    'scheduler': {
        'refresh_enabled': False,
        'refresh_interval_seconds': 60,
    },
    'logging': {
        'file': 'radio_nowplaying.log',
        'max_bytes': 10485760,
        'backup_count': 5,
        'console_level': 'INFO',
        'file_level': 'ERROR',
    },
    'gui': {
        'host': '0.0.0.0',
        'port': 5000,
        'debug': False,
    },
}


def _merge(base, override):
    """Recursively merge override into a copy of base"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_settings_path(path=None):
    """Resolve the settings file path (argument > environment > default)"""
    return path or os.environ.get(SETTINGS_ENV_VAR) or SETTINGS_FILE


def load_settings(path=None):
    """Load settings from the JSON settings file, merged over the defaults

    Args:
        path: Settings file path (optional)

    Returns:
        Settings dict (never None)
    """
    settings_file = get_settings_path(path)

    if not os.path.exists(settings_file):
        logger.debug(f"No settings file at {settings_file}, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)

    try:
        with open(settings_file, 'r', encoding='utf-8') as f:
            user_settings = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading settings from {settings_file}: {e}")
        return copy.deepcopy(DEFAULT_SETTINGS)

    if not isinstance(user_settings, dict):
        logger.error(f"Settings file {settings_file} must contain a JSON object, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)

    return _merge(DEFAULT_SETTINGS, user_settings)


def save_settings(settings_dict, path=None):
    """Save settings to the JSON settings file

    Returns:
        True if saved successfully, False otherwise
    """
    settings_file = get_settings_path(path)

    try:
        with open(settings_file, 'w', encoding='utf-8') as f:
            json.dump(settings_dict, f, indent=2)
        logger.info(f"Settings saved to {settings_file}")
        return True
    except OSError as e:
        logger.error(f"Error saving settings: {e}")
        return False


def get_openai_api_key(settings):
    """Get the OpenAI API key (settings first, then OPENAI_API_KEY)

    Returns:
        API key string, or None when the audio/LLM tier is not configured
    """
    key = (settings or {}).get('ad_detection', {}).get('openai_api_key')
    if not key:
        key = os.environ.get('OPENAI_API_KEY')
    if key and key.strip():
        return key.strip()
    return None
