import json
from pathlib import Path

import pytest

from phono.formats import MP3, WAV
from phono.utils.config import ServiceSettings, load_settings, settings_from_env


def test_defaults():
    settings = ServiceSettings()

    assert settings.buffer_size == 1024
    assert settings.temp_dir is None
    assert settings.input_size_policy().limit_for(WAV) is None


def test_rejects_non_positive_buffer_size():
    with pytest.raises(ValueError):
        ServiceSettings(buffer_size=0)


def test_rejects_negative_max_size():
    with pytest.raises(ValueError):
        ServiceSettings(max_input_sizes={"wav": -1})


def test_settings_from_env_reads_prefixed_variables(tmp_path: Path):
    settings = settings_from_env(
        {
            "PHONO_BUFFER_SIZE": "2048",
            "PHONO_TEMP_DIR": str(tmp_path),
            "PHONO_MAX_SIZE_WAV": "1000",
            "PHONO_MAX_SIZE_MP3": "0",
            "UNRELATED": "x",
        }
    )

    assert settings.buffer_size == 2048
    assert settings.temp_dir == tmp_path
    policy = settings.input_size_policy()
    assert policy.limit_for(WAV) == 1000
    assert policy.limit_for(MP3) is None


def test_settings_from_env_prefers_config_file(tmp_path: Path):
    config_path = tmp_path / "phono.json"
    config_path.write_text(json.dumps({"buffer_size": 64, "max_input_sizes": {"FLAC": 5}}))

    settings = settings_from_env({"PHONO_CONFIG": str(config_path), "PHONO_BUFFER_SIZE": "9"})

    assert settings.buffer_size == 64
    assert settings.max_input_sizes == {"flac": 5}


def test_load_settings_from_yaml(tmp_path: Path):
    pytest.importorskip("yaml")
    config_path = tmp_path / "phono.yaml"
    config_path.write_text("buffer_size: 512\nmax_input_sizes:\n  wav: 2048\n")

    settings = load_settings(config_path)

    assert settings.buffer_size == 512
    assert settings.max_input_sizes == {"wav": 2048}
