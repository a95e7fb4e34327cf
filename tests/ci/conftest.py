"""
Shared fakes for the session lifecycle tests.

Nothing here launches a real browser: connectors return SessionHandles wrapping
fake browser/page/process objects that record how they were used.
"""

import asyncio
from collections.abc import Callable

import pytest

from brave_mcp.browser.strategies import build_strategies
from brave_mcp.browser.supervisor import ConnectionSupervisor
from brave_mcp.browser.views import ConnectionStrategy, LaunchOptions, SessionHandles, SessionManagerSettings


class FakeCDPSession:
	def __init__(self, browser: 'FakeBrowser'):
		self.browser = browser
		self.detached = False

	async def send(self, method: str, params: dict | None = None) -> dict:
		self.browser.cdp_calls.append(method)
		if self.browser.probe_delay:
			await asyncio.sleep(self.browser.probe_delay)
		if self.browser.probe_error:
			raise self.browser.probe_error
		return {'product': 'Brave/1.0', 'protocolVersion': '1.3'}

	async def detach(self) -> None:
		self.detached = True


class FakePage:
	def __init__(self, close_delay: float = 0.0, close_error: Exception | None = None):
		self.closed = False
		self.close_delay = close_delay
		self.close_error = close_error
		self.evaluations: list[str] = []

	async def evaluate(self, expression: str):
		self.evaluations.append(expression)
		return True

	async def close(self) -> None:
		if self.close_delay:
			await asyncio.sleep(self.close_delay)
		if self.close_error:
			raise self.close_error
		self.closed = True


class FakeContext:
	def __init__(self, pages: list[FakePage]):
		self.pages = pages


class FakeBrowser:
	def __init__(self, pages: list[FakePage] | None = None):
		self.pages = pages if pages is not None else [FakePage()]
		self.contexts = [FakeContext(self.pages)]
		self.closed = False
		self.close_error: Exception | None = None
		self.probe_error: Exception | None = None
		self.probe_delay = 0.0
		self.cdp_calls: list[str] = []

	async def new_browser_cdp_session(self) -> FakeCDPSession:
		return FakeCDPSession(self)

	async def close(self) -> None:
		if self.close_error:
			raise self.close_error
		self.closed = True


class FakeProcess:
	def __init__(self, pid: int = 4242, survives_terminate: bool = False):
		self.pid = pid
		self.running = True
		self.survives_terminate = survives_terminate
		self.terminated = False
		self.killed = False

	def is_running(self) -> bool:
		return self.running

	def terminate(self) -> None:
		self.terminated = True
		if not self.survives_terminate:
			self.running = False

	def kill(self) -> None:
		self.killed = True
		self.running = False


class FakePlaywright:
	def __init__(self):
		self.stopped = False

	async def stop(self) -> None:
		self.stopped = True


def make_session(strategy: str = 'full', **kwargs) -> SessionHandles:
	browser = kwargs.pop('browser', None) or FakeBrowser()
	return SessionHandles(
		browser=browser,
		page=browser.pages[0] if browser.pages else FakePage(),
		process=kwargs.pop('process', FakeProcess()),
		playwright=kwargs.pop('playwright', FakePlaywright()),
		cdp_url=kwargs.pop('cdp_url', 'http://127.0.0.1:9222/'),
		strategy=strategy,
		**kwargs,
	)


class FakeConnector:
	"""Stands in for BraveLauncher.connect.

	`outcomes` maps a strategy name to a list of results consumed in order; each result is either
	an exception to raise or None for success. Strategies without scripted outcomes succeed.
	"""

	def __init__(self, outcomes: dict[str, list[Exception | None]] | None = None, delay: float = 0.0):
		self.outcomes = outcomes or {}
		self.delay = delay
		self.calls: list[ConnectionStrategy] = []
		self.sessions: list[SessionHandles] = []

	@property
	def names(self) -> list[str]:
		return [strategy.name for strategy in self.calls]

	async def __call__(self, strategy: ConnectionStrategy) -> SessionHandles:
		self.calls.append(strategy)
		if self.delay:
			await asyncio.sleep(self.delay)
		scripted = self.outcomes.get(strategy.name)
		if scripted:
			outcome = scripted.pop(0)
			if outcome is not None:
				raise outcome
		session = make_session(strategy.name, cdp_url=f'http://{strategy.debug_host}:{strategy.debug_port or 9222}/')
		self.sessions.append(session)
		return session


class FakeClock:
	def __init__(self, now: float = 1000.0):
		self.now = now

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


class RecordingSleep:
	def __init__(self):
		self.delays: list[float] = []

	async def __call__(self, seconds: float) -> None:
		self.delays.append(seconds)


def strategies_named(*names: str, debug_host: str = '127.0.0.1') -> list[ConnectionStrategy]:
	return [ConnectionStrategy(name=name, debug_host=debug_host, debug_port=9222) for name in names]


@pytest.fixture
def clock() -> FakeClock:
	return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
	return RecordingSleep()


@pytest.fixture
def fast_settings() -> SessionManagerSettings:
	return SessionManagerSettings(
		connect_timeout=2.0,
		validation_timeout=0.5,
		pages_list_timeout=0.5,
		page_close_timeout=0.2,
		browser_close_timeout=0.5,
		playwright_stop_timeout=0.5,
		kill_grace_period=0.01,
	)


@pytest.fixture
def no_port_scan(monkeypatch) -> Callable:
	"""Skip host probing and port scanning, strategies get a fixed loopback port."""

	async def plan(self, options: LaunchOptions) -> list[ConnectionStrategy]:
		return build_strategies(options, debug_port=9222, debug_host='127.0.0.1')

	monkeypatch.setattr(ConnectionSupervisor, 'plan', plan)
	return plan
