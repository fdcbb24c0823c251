from __future__ import annotations

from pathlib import Path

import pytest

from studiojob.common.job_store import Pipeline
from studiojob.common.poll_policy import PollPolicy
from studiojob.config import StudioConfig, load_config


def test_defaults_match_product_constants() -> None:
    config = StudioConfig.from_dict({})

    assert config.api.base_url == "https://api.chromastudio.ai"
    assert config.job.pipeline is Pipeline.IMAGE
    assert config.job.effect_id == "mugshot"
    assert config.poll.policy() == PollPolicy(max_attempts=60, interval_seconds=2.0)
    assert config.poll.policy().budget_seconds == 120.0
    assert config.upload.max_bytes == 10 * 1024 * 1024


def test_load_config_reads_yaml_and_env(tmp_path: Path) -> None:
    path = tmp_path / "studiojob.yaml"
    path.write_text(
        "api:\n"
        "  base_url: https://api.example.test/\n"
        "job:\n"
        "  pipeline: video\n"
        "  remove_watermark: 'no'\n"
        "poll:\n"
        "  interval_seconds: 1.5\n"
        "  max_attempts: 10\n",
        encoding="utf-8",
    )

    config = load_config(
        path,
        env={
            "STUDIOJOB_POLL_MAX_ATTEMPTS": "5",
            "STUDIOJOB_OUTPUT_DIR": str(tmp_path / "saved"),
            "STUDIOJOB_USER_ID": "someone",
        },
    )

    assert config.api.base_url == "https://api.example.test"
    assert config.job.pipeline is Pipeline.VIDEO
    assert config.job.remove_watermark is False
    assert config.job.user_id == "someone"
    assert config.poll.interval_seconds == 1.5
    assert config.poll.max_attempts == 5
    assert config.download.output_dir == tmp_path / "saved"


def test_invalid_values_fall_back_to_defaults() -> None:
    config = StudioConfig.from_dict(
        {
            "job": {"pipeline": "hologram"},
            "poll": {"interval_seconds": "soon", "max_attempts": 0},
            "api": {"timeout_seconds": -3},
        }
    )

    assert config.job.pipeline is Pipeline.IMAGE
    assert config.poll.interval_seconds == 2.0
    assert config.poll.max_attempts == 1
    assert config.api.timeout_seconds == 30.0


def test_poll_policy_validates_bounds() -> None:
    with pytest.raises(ValueError):
        PollPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        PollPolicy(interval_seconds=-1.0)

    policy = PollPolicy(max_attempts=2, interval_seconds=0.0)
    assert not policy.exhausted(1)
    assert policy.exhausted(2)
