"""Best-effort release of everything a session holds."""

import asyncio
import logging
import shutil
from pathlib import Path

import psutil

from brave_mcp.browser.timeouts import with_timeout
from brave_mcp.browser.views import TEMP_DIR_PREFIX, SessionHandles, SessionManagerSettings

logger = logging.getLogger(__name__)


async def _list_pages(browser) -> list:
	return [page for context in browser.contexts for page in context.pages]


async def stop_process(process: psutil.Process, grace_period: float = 1.0) -> None:
	"""SIGTERM, wait out the grace period, then SIGKILL whatever is left."""
	try:
		if not process.is_running():
			return
		logger.debug(f'🔪 Terminating browser process pid={process.pid}')
		process.terminate()
		await asyncio.sleep(grace_period)
		if process.is_running():
			logger.debug(f'💀 Browser process pid={process.pid} survived terminate, killing it')
			process.kill()
	except psutil.NoSuchProcess:
		pass
	except Exception as e:
		logger.debug(f'Failed to stop browser process: {type(e).__name__}: {e}')


def remove_profile_dir(user_data_dir: str | Path | None) -> None:
	"""Delete a throwaway profile directory. Directories we did not create are left alone."""
	if user_data_dir is None:
		return
	path = Path(user_data_dir)
	if not path.name.startswith(TEMP_DIR_PREFIX):
		return
	shutil.rmtree(path, ignore_errors=True)
	if path.exists():
		logger.debug(f'Profile directory {path} could not be removed completely')


async def teardown_session(session: SessionHandles, settings: SessionManagerSettings | None = None) -> None:
	"""Close pages, browser, playwright and the OS process of a session. Never raises.

	Every step has its own deadline and its failure only skips that step.
	"""
	settings = settings or SessionManagerSettings()
	browser = session.browser

	pages: list = []
	if browser is not None:
		try:
			pages = await with_timeout(_list_pages(browser), settings.pages_list_timeout, 'teardown:list-pages')
		except Exception as e:
			logger.debug(f'Could not list pages during teardown: {type(e).__name__}: {e}')

	for page in pages:
		try:
			await with_timeout(page.close(), settings.page_close_timeout, 'teardown:close-page')
		except Exception as e:
			logger.debug(f'Page close failed during teardown: {type(e).__name__}: {e}')

	if browser is not None:
		try:
			await with_timeout(browser.close(), settings.browser_close_timeout, 'teardown:close-browser')
		except Exception as e:
			logger.debug(f'Browser close failed during teardown: {type(e).__name__}: {e}')

	if session.playwright is not None:
		try:
			await with_timeout(session.playwright.stop(), settings.playwright_stop_timeout, 'teardown:stop-playwright')
		except Exception as e:
			logger.debug(f'Playwright stop failed during teardown: {type(e).__name__}: {e}')

	if session.process is not None:
		await stop_process(session.process, settings.kill_grace_period)

	remove_profile_dir(session.user_data_dir)
	logger.debug(f'🧹 Session teardown finished (strategy={session.strategy})')
