"""Configuration loading helpers for the studiojob client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from studiojob.common.job_store import Pipeline
from studiojob.common.poll_policy import PollPolicy


DEFAULT_CONFIG_PATH = Path("studiojob/config.yaml")
FALLBACK_CONFIG_PATH = Path("studiojob/config.example.yaml")


@dataclass
class ApiConfig:
    base_url: str = "https://api.chromastudio.ai"
    contents_base_url: str = "https://contents.maxstudio.ai"
    timeout_seconds: float = 30.0

    def normalized(self) -> "ApiConfig":
        timeout = _maybe_float(self.timeout_seconds, 30.0) or 30.0
        if timeout <= 0.0:
            timeout = 30.0
        return ApiConfig(
            base_url=(self.base_url or ApiConfig.base_url).strip().rstrip("/"),
            contents_base_url=(self.contents_base_url or ApiConfig.contents_base_url).strip().rstrip("/"),
            timeout_seconds=timeout,
        )


@dataclass
class JobConfig:
    pipeline: Pipeline = Pipeline.IMAGE
    model: str = "image-effects"
    tool_type: str = "image-effects"
    effect_id: str = "mugshot"
    user_id: str = "DObRu1vyStbUynoQmTcHBlhs55z2"
    remove_watermark: bool = True
    is_private: bool = True


@dataclass
class PollConfig:
    interval_seconds: float = 2.0
    max_attempts: int = 60

    def normalized(self) -> "PollConfig":
        interval = _maybe_float(self.interval_seconds, 2.0)
        if interval is None or interval < 0.0:
            interval = 2.0
        attempts = _maybe_int(self.max_attempts, 60)
        if attempts is None or attempts < 1:
            attempts = 1
        return PollConfig(interval_seconds=interval, max_attempts=attempts)

    def policy(self) -> PollPolicy:
        return PollPolicy(max_attempts=self.max_attempts, interval_seconds=self.interval_seconds)


@dataclass
class UploadConfig:
    max_bytes: int = 10 * 1024 * 1024


@dataclass
class DownloadConfig:
    output_dir: Path = Path("downloads")
    filename_prefix: str = "mugshot"
    token_length: int = 8


@dataclass
class StudioConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    job: JobConfig = field(default_factory=JobConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StudioConfig":
        api_data = data.get("api", {}) or {}
        api_defaults = ApiConfig()
        api = ApiConfig(
            base_url=str(api_data.get("base_url") or api_defaults.base_url),
            contents_base_url=str(api_data.get("contents_base_url") or api_defaults.contents_base_url),
            timeout_seconds=_maybe_float(api_data.get("timeout_seconds"), api_defaults.timeout_seconds)
            or api_defaults.timeout_seconds,
        ).normalized()

        job_data = data.get("job", {}) or {}
        job_defaults = JobConfig()
        job = JobConfig(
            pipeline=_parse_pipeline(job_data.get("pipeline"), job_defaults.pipeline),
            model=str(job_data.get("model") or job_defaults.model),
            tool_type=str(job_data.get("tool_type") or job_defaults.tool_type),
            effect_id=str(job_data.get("effect_id") or job_defaults.effect_id),
            user_id=str(job_data.get("user_id") or job_defaults.user_id),
            remove_watermark=_parse_bool(job_data.get("remove_watermark"), job_defaults.remove_watermark),
            is_private=_parse_bool(job_data.get("is_private"), job_defaults.is_private),
        )

        poll_data = data.get("poll", {}) or {}
        poll = PollConfig(
            interval_seconds=poll_data.get("interval_seconds", PollConfig.interval_seconds),
            max_attempts=poll_data.get("max_attempts", PollConfig.max_attempts),
        ).normalized()

        upload_data = data.get("upload", {}) or {}
        max_bytes = _maybe_int(upload_data.get("max_bytes"), UploadConfig.max_bytes) or UploadConfig.max_bytes
        upload = UploadConfig(max_bytes=max(1, max_bytes))

        download_data = data.get("download", {}) or {}
        download_defaults = DownloadConfig()
        output_dir = download_data.get("output_dir")
        token_length = _maybe_int(download_data.get("token_length"), download_defaults.token_length)
        download = DownloadConfig(
            output_dir=Path(output_dir) if output_dir else download_defaults.output_dir,
            filename_prefix=str(download_data.get("filename_prefix") or download_defaults.filename_prefix).strip()
            or download_defaults.filename_prefix,
            token_length=max(1, token_length or download_defaults.token_length),
        )

        return cls(api=api, job=job, poll=poll, upload=upload, download=download)

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        if "STUDIOJOB_API_BASE_URL" in env:
            value = env["STUDIOJOB_API_BASE_URL"].strip()
            if value:
                self.api.base_url = value
        if "STUDIOJOB_CONTENTS_BASE_URL" in env:
            value = env["STUDIOJOB_CONTENTS_BASE_URL"].strip()
            if value:
                self.api.contents_base_url = value
        if "STUDIOJOB_HTTP_TIMEOUT_SECONDS" in env:
            timeout = _maybe_float(env["STUDIOJOB_HTTP_TIMEOUT_SECONDS"], self.api.timeout_seconds)
            if timeout is not None:
                self.api.timeout_seconds = timeout

        if "STUDIOJOB_PIPELINE" in env:
            self.job.pipeline = _parse_pipeline(env["STUDIOJOB_PIPELINE"], self.job.pipeline)
        if "STUDIOJOB_USER_ID" in env:
            value = env["STUDIOJOB_USER_ID"].strip()
            if value:
                self.job.user_id = value
        if "STUDIOJOB_EFFECT_ID" in env:
            value = env["STUDIOJOB_EFFECT_ID"].strip()
            if value:
                self.job.effect_id = value

        if "STUDIOJOB_POLL_INTERVAL_SECONDS" in env:
            interval = _maybe_float(env["STUDIOJOB_POLL_INTERVAL_SECONDS"], self.poll.interval_seconds)
            if interval is not None:
                self.poll.interval_seconds = interval
        if "STUDIOJOB_POLL_MAX_ATTEMPTS" in env:
            attempts = _maybe_int(env["STUDIOJOB_POLL_MAX_ATTEMPTS"], self.poll.max_attempts)
            if attempts is not None:
                self.poll.max_attempts = attempts

        if "STUDIOJOB_OUTPUT_DIR" in env:
            value = env["STUDIOJOB_OUTPUT_DIR"].strip()
            if value:
                self.download.output_dir = Path(value)

        self.api = self.api.normalized()
        self.poll = self.poll.normalized()


def load_config(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> StudioConfig:
    env = os.environ if env is None else env

    candidate_paths: list[Path] = []
    if path:
        candidate_paths.append(Path(path))
    elif env.get("STUDIOJOB_CONFIG_PATH"):
        candidate_paths.append(Path(env["STUDIOJOB_CONFIG_PATH"]))

    candidate_paths.extend([DEFAULT_CONFIG_PATH, FALLBACK_CONFIG_PATH])

    config_data: dict[str, Any] = {}
    for candidate in candidate_paths:
        if candidate and candidate.exists():
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
            config_data = loaded if isinstance(loaded, dict) else {}
            break

    config = StudioConfig.from_dict(config_data)
    config.apply_env_overrides(env)
    return config


def _parse_pipeline(value: Any, default: Pipeline) -> Pipeline:
    if value in {None, "", "None"}:
        return default
    normalized = str(value).strip().lower()
    try:
        return Pipeline(normalized)
    except ValueError:
        return default


def _parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _maybe_float(value: Any, default: Optional[float]) -> Optional[float]:
    if value in {None, "", "None"}:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _maybe_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value in {None, "", "None"}:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


__all__ = [
    "StudioConfig",
    "ApiConfig",
    "JobConfig",
    "PollConfig",
    "UploadConfig",
    "DownloadConfig",
    "load_config",
]
