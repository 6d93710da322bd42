"""
Radio Now Playing Test Suite

Test Files:
- conftest.py: Pytest fixtures, fake adapters and a fake clock
- test_adapters.py: Triton, StreamTheWorld, SomaFM wire formats and failures
- test_ad_detection.py / test_ad_classifier.py: metadata tiers, branding, LLM parsing
- test_deep_detection.py: stream capture, decoding, transcription pipeline
- test_dispatcher.py: poll state machine, fallback, caching, audio verdicts
- test_database.py / test_api.py: persistence and HTTP endpoints

Running Tests:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/test_dispatcher.py

    # Run only unit tests
    pytest -m unit
"""
