"""Configuration for brave-mcp, backed by environment variables and an optional .env file."""

import logging
import os
import platform
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parent.parent


def load_env_file(paths: list[Path] | None = None) -> Path | None:
	"""Seed os.environ from the first .env file found.

	Variables that are already set are never overridden. Returns the path that was loaded, if any.
	"""
	candidates = paths if paths is not None else [Path.cwd() / '.env', REPO_ROOT / '.env']
	for candidate in candidates:
		if candidate.is_file():
			load_dotenv(candidate, override=False)
			logger.debug(f'Loaded environment from {candidate}')
			return candidate
	return None


load_env_file()


class Config:
	"""Lazily-evaluated configuration.

	Every attribute re-reads the environment on access so changes made after import
	(e.g. in tests) are picked up.
	"""

	@property
	def BRAVE_PATH(self) -> str | None:
		return os.getenv('BRAVE_PATH') or os.getenv('PUPPETEER_EXECUTABLE_PATH') or None

	@property
	def HEADLESS(self) -> bool:
		return os.getenv('HEADLESS', '').strip().lower() == 'true'

	@property
	def BRAVE_MCP_LOGGING_LEVEL(self) -> str:
		return os.getenv('BRAVE_MCP_LOGGING_LEVEL', 'info').lower()

	@property
	def BRAVE_MCP_DEBUG_PORT_START(self) -> int:
		return int(os.getenv('BRAVE_MCP_DEBUG_PORT_START', '9222'))

	@property
	def BRAVE_MCP_DEBUG_PORT_END(self) -> int:
		return int(os.getenv('BRAVE_MCP_DEBUG_PORT_END', '9322'))

	@property
	def IS_WINDOWS(self) -> bool:
		return platform.system() == 'Windows'


CONFIG = Config()
