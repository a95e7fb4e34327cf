"""Default launch collaborator: spawn Brave with remote debugging and attach playwright over CDP."""

import asyncio
import logging
import os
import platform
import shutil
import tempfile
from collections.abc import Awaitable, Callable
from pathlib import Path

import aiohttp
import psutil
from playwright.async_api import async_playwright

from brave_mcp.browser.teardown import remove_profile_dir, stop_process
from brave_mcp.browser.views import TEMP_DIR_PREFIX, ConnectionStrategy, SessionHandles
from brave_mcp.config import CONFIG

logger = logging.getLogger(__name__)

# async (strategy) -> live session, raises on failure
Connector = Callable[[ConnectionStrategy], Awaitable[SessionHandles]]

BRAVE_PATH_PATTERNS = {
	'Windows': [
		r'C:\Program Files\BraveSoftware\Brave-Browser\Application\brave.exe',
		r'C:\Program Files (x86)\BraveSoftware\Brave-Browser\Application\brave.exe',
		r'%LOCALAPPDATA%\BraveSoftware\Brave-Browser\Application\brave.exe',
		r'%APPDATA%\BraveSoftware\Brave-Browser\Application\brave.exe',
	],
	'Darwin': [
		'/Applications/Brave Browser.app/Contents/MacOS/Brave Browser',
		'~/Applications/Brave Browser.app/Contents/MacOS/Brave Browser',
		'/Applications/Brave Browser Beta.app/Contents/MacOS/Brave Browser Beta',
	],
	'Linux': [
		'/usr/bin/brave-browser',
		'/usr/bin/brave-browser-stable',
		'/usr/bin/brave',
		'/opt/brave.com/brave/brave',
		'/snap/bin/brave',
		'/var/lib/flatpak/exports/bin/com.brave.Browser',
		'~/.local/bin/brave-browser',
	],
}


def find_brave_path() -> str | None:
	"""Locate the Brave executable.

	Priority: BRAVE_PATH / PUPPETEER_EXECUTABLE_PATH env var > platform install locations.
	"""
	env_path = CONFIG.BRAVE_PATH
	if env_path:
		if Path(env_path).expanduser().is_file():
			return str(Path(env_path).expanduser())
		logger.warning(f'⚠️ BRAVE_PATH={env_path} does not exist, falling back to auto-detection')

	system = platform.system()
	for pattern in BRAVE_PATH_PATTERNS.get(system, []):
		pattern_str = os.path.expandvars(str(Path(pattern).expanduser()))
		if '%' in pattern_str:
			# unresolved windows env var
			continue
		if Path(pattern_str).is_file():
			return pattern_str

	for command in ('brave-browser', 'brave'):
		found = shutil.which(command)
		if found:
			return found
	return None


def build_launch_args(strategy: ConnectionStrategy, user_data_dir: Path | str) -> list[str]:
	args = [
		f'--remote-debugging-port={strategy.debug_port}',
		f'--user-data-dir={user_data_dir}',
		*strategy.args,
	]
	if strategy.headless:
		args.append('--headless=new')
	if strategy.proxy:
		args.append(f'--proxy-server={strategy.proxy}')
	if strategy.extension_paths:
		extensions = ','.join(strategy.extension_paths)
		args.append(f'--disable-extensions-except={extensions}')
		args.append(f'--load-extension={extensions}')
	args.append('about:blank')
	return args


async def read_devtools_active_port(user_data_dir: Path, process: psutil.Process | None = None, timeout: float = 30) -> int:
	"""Read the port the browser picked for --remote-debugging-port=0."""
	port_file = Path(user_data_dir) / 'DevToolsActivePort'
	loop = asyncio.get_running_loop()
	deadline = loop.time() + timeout

	while loop.time() < deadline:
		if process is not None and not process.is_running():
			raise RuntimeError(f'Browser exited before opening its debug port (pid {process.pid})')
		try:
			first_line = port_file.read_text().splitlines()[0].strip()
			if first_line.isdigit():
				return int(first_line)
		except (OSError, IndexError):
			pass
		await asyncio.sleep(0.1)

	raise TimeoutError(f'Browser did not write {port_file.name} within {timeout} seconds')


async def wait_for_cdp_url(host: str, port: int, timeout: float = 30, process: psutil.Process | None = None) -> str:
	"""Wait for the browser's /json/version endpoint to answer and return the CDP URL."""
	loop = asyncio.get_running_loop()
	start_time = loop.time()
	url = f'http://{host}:{port}'
	last_error: Exception | None = None

	while loop.time() - start_time < timeout:
		if process is not None and not process.is_running():
			raise RuntimeError(f'Browser exited unexpectedly while waiting for CDP on {host}:{port}')
		try:
			async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=2)) as session:
				async with session.get(f'{url}/json/version') as resp:
					if resp.status == 200:
						return f'{url}/'
					# browser is starting up and returning 502/500 errors
					last_error = RuntimeError(f'/json/version returned HTTP {resp.status}')
		except aiohttp.ClientConnectorError as e:
			last_error = ConnectionRefusedError(f'Connection refused on {host}:{port}: {e}')
		except (aiohttp.ClientError, TimeoutError, OSError) as e:
			last_error = e
		await asyncio.sleep(0.1)

	if isinstance(last_error, ConnectionRefusedError):
		raise ConnectionRefusedError(f'Browser did not accept CDP connections within {timeout} seconds ({last_error})')
	raise TimeoutError(f'Browser did not start within {timeout} seconds (last error: {last_error})')



def kill_all_brave_processes() -> int:
	"""Kill every Brave process on the machine, returns how many were signalled."""
	killed = 0
	for proc in psutil.process_iter(['name']):
		try:
			name = (proc.info.get('name') or '').lower()
			if name.startswith('brave'):
				proc.kill()
				killed += 1
		except (psutil.NoSuchProcess, psutil.AccessDenied):
			continue
	if killed:
		logger.info(f'💀 Killed {killed} Brave processes')
	return killed


class BraveLauncher:
	"""Spawns a fresh Brave process per attempt and connects playwright to it over CDP."""

	def __init__(self, cdp_ready_timeout: float = 30.0):
		self.cdp_ready_timeout = cdp_ready_timeout

	async def connect(self, strategy: ConnectionStrategy) -> SessionHandles:
		browser_path = strategy.executable_path or find_brave_path()
		if not browser_path:
			raise FileNotFoundError(
				'Brave browser not found. Install Brave or set the BRAVE_PATH environment variable to its executable.'
			)

		user_data_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
		launch_args = build_launch_args(strategy, user_data_dir)
		process: psutil.Process | None = None
		playwright = None

		try:
			logger.debug(f'🚀 [{strategy.name}] Launching {browser_path} with {len(launch_args)} args...')
			subprocess = await asyncio.create_subprocess_exec(
				browser_path,
				*launch_args,
				stdout=asyncio.subprocess.DEVNULL,
				stderr=asyncio.subprocess.DEVNULL,
			)
			process = psutil.Process(subprocess.pid)

			port = strategy.debug_port or await read_devtools_active_port(user_data_dir, process, self.cdp_ready_timeout)
			cdp_url = await wait_for_cdp_url(strategy.debug_host, port, self.cdp_ready_timeout, process)
			logger.debug(f'🎭 [{strategy.name}] Browser pid={process.pid} listening on {cdp_url}')

			playwright = await async_playwright().start()
			browser = await playwright.chromium.connect_over_cdp(cdp_url, **strategy.connect_options)
			context = browser.contexts[0] if browser.contexts else await browser.new_context()
			page = context.pages[0] if context.pages else await context.new_page()

			return SessionHandles(
				browser=browser,
				page=page,
				process=process,
				playwright=playwright,
				user_data_dir=user_data_dir,
				cdp_url=cdp_url,
				strategy=strategy.name,
			)

		except BaseException:
			# also reached on CancelledError when the connect deadline fires
			if playwright is not None:
				try:
					await playwright.stop()
				except Exception:
					pass
			if process is not None:
				await stop_process(process)
			remove_profile_dir(user_data_dir)
			raise
