"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

from .orchestrator.monitor import OrchestratorConfig

APP_NAME = "claude-code-orchestrator"


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	log_dir: Path = field(init=False)

	# Seed values for the orchestrator monitor ([orchestrator] table in config.toml)
	orchestrator: dict = field(default_factory=dict)

	def __post_init__(self) -> None:
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)

	def orchestrator_config(self) -> OrchestratorConfig:
		"""Build the monitor config from defaults plus the seeded overrides."""
		return OrchestratorConfig().merged(self.orchestrator)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply CLAUDE_ORCHESTRATOR_* environment variable overrides."""
	env_map = {
		"CLAUDE_ORCHESTRATOR_CONFIG_DIR": "config_dir",
		"CLAUDE_ORCHESTRATOR_DATA_DIR": "data_dir",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	worker_path = os.getenv("CLAUDE_ORCHESTRATOR_WORKER_PATH")
	if worker_path:
		config.orchestrator["worker_executable_path"] = worker_path

	max_concurrent = os.getenv("CLAUDE_ORCHESTRATOR_MAX_CONCURRENT")
	if max_concurrent:
		config.orchestrator["max_concurrent_processes"] = int(max_concurrent)

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	for key, val in data.items():
		if key == "orchestrator" and isinstance(val, dict):
			config.orchestrator.update(val)
		elif key in path_fields:
			setattr(config, key, Path(os.path.expanduser(val)))

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config
