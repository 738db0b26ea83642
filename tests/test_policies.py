import pytest

from phono.domain.policies import DEFAULT_INPUT_SIZE_POLICY, InputSizePolicy
from phono.formats import FLAC, MP3, WAV


def test_default_policy_is_unlimited():
    assert DEFAULT_INPUT_SIZE_POLICY.limit_for(WAV) is None


def test_limits_are_per_format_and_case_insensitive():
    policy = InputSizePolicy(max_sizes={"WAV": 10, "mp3": 0})

    assert policy.limit_for(WAV) == 10
    assert policy.limit_for(MP3) is None
    assert policy.limit_for(FLAC) is None


def test_policy_is_read_only():
    policy = InputSizePolicy(max_sizes={"wav": 10})

    with pytest.raises(TypeError):
        policy.max_sizes["wav"] = 20


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        InputSizePolicy(max_sizes={"flac": -5})
