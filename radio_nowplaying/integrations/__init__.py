"""
Radio Now Playing Integrations Package

This package contains third-party service integrations.
"""

from .ad_classifier import (
    send_classification_request,
    parse_classification_response,
    clamp_confidence,
    load_system_prompt,
    get_default_system_prompt
)
from .transcription import transcribe_audio

__all__ = [
    'send_classification_request',
    'parse_classification_response',
    'clamp_confidence',
    'load_system_prompt',
    'get_default_system_prompt',
    'transcribe_audio'
]
