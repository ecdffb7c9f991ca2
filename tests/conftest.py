import pytest

# Settings that would leak into load_config() from the developer's shell
_ENV_VARS = (
    "FRAMESIFT_CONFIG", "SOURCE_TYPE", "SOURCE_URI", "SAMPLE_RATE", "OUTPUT_URI",
    "OUTPUT_CODEC", "MODEL_WEIGHTS", "DETECTOR_DEVICE", "LOG_LEVEL", "LOG_FILE",
    "STATS_ENABLED", "REDIS_HOST", "REDIS_PORT", "DEV_MODE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
