"""Walks the strategy table until one launch sticks."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from bubus import EventBus

from brave_mcp.browser.circuit_breaker import CircuitBreaker
from brave_mcp.browser.events import StrategyFailedEvent
from brave_mcp.browser.launcher import Connector
from brave_mcp.browser.ports import find_available_port, probe_host_connectivity
from brave_mcp.browser.strategies import build_strategies
from brave_mcp.browser.timeouts import categorize_error, is_connection_refused, is_executable_missing, with_timeout
from brave_mcp.browser.views import (
	BrowserErrorType,
	BrowserInitializationError,
	ConnectionStrategy,
	LaunchOptions,
	SessionHandles,
	SessionManagerSettings,
)
from brave_mcp.utils import time_execution_async

logger = logging.getLogger(__name__)

GUIDANCE_EXECUTABLE_MISSING = [
	'Install the Brave browser from https://brave.com/download/',
	'Or point BRAVE_PATH at the Brave executable, e.g. BRAVE_PATH=/usr/bin/brave-browser',
]
GUIDANCE_CONNECTION_REFUSED = [
	'The browser started but refused the DevTools connection',
	'Check that nothing else is bound to the debug port range (run `brave-mcp --diagnose`)',
	'Firewalls or a broken hosts file can block localhost, 127.0.0.1 is tried automatically',
]
GUIDANCE_TIMEOUT = [
	'The browser did not come up before the connect deadline',
	'Close other Brave windows or run `brave-mcp --kill-all` to clear stuck processes',
	'Slow machines may need a larger connect_timeout',
]
GUIDANCE_GENERIC = [
	'Run with BRAVE_MCP_LOGGING_LEVEL=debug to see each strategy failure',
	'Run `brave-mcp --probe` to reproduce the launch outside the tool server',
]


def failure_guidance(error: BaseException | None, refused_patterns) -> list[str]:
	if error is None:
		return GUIDANCE_GENERIC
	if is_executable_missing(error):
		return GUIDANCE_EXECUTABLE_MISSING
	if is_connection_refused(error, refused_patterns):
		return GUIDANCE_CONNECTION_REFUSED
	if categorize_error(error) is BrowserErrorType.TIMEOUT:
		return GUIDANCE_TIMEOUT
	return GUIDANCE_GENERIC


class ConnectionSupervisor:
	"""Tries each ConnectionStrategy in order and reports one verdict per run to the circuit breaker."""

	def __init__(
		self,
		connector: Connector,
		circuit_breaker: CircuitBreaker,
		settings: SessionManagerSettings | None = None,
		event_bus: EventBus | None = None,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	):
		self.connector = connector
		self.circuit_breaker = circuit_breaker
		self.settings = settings or SessionManagerSettings()
		self.event_bus = event_bus
		self._sleep = sleep

	async def plan(self, options: LaunchOptions) -> list[ConnectionStrategy]:
		"""Pick host and debug port once, then build the strategy table around them."""
		connectivity = await probe_host_connectivity(self.settings.host_probe_port)
		port = await find_available_port(
			self.settings.debug_port_start,
			self.settings.debug_port_end,
			connectivity.recommended_host,
		)
		return build_strategies(options, debug_port=port or 0, debug_host=connectivity.recommended_host)

	async def _attempt(self, strategy: ConnectionStrategy) -> SessionHandles:
		try:
			return await with_timeout(
				lambda: self.connector(strategy), self.settings.connect_timeout, f'connect:{strategy.name}'
			)
		except Exception as e:
			if not is_connection_refused(e, self.settings.refused_patterns):
				raise
			flipped = strategy.with_alternate_host()
			logger.info(f'🔁 [{strategy.name}] {strategy.debug_host} refused the connection, retrying via {flipped.debug_host}')
			return await with_timeout(
				lambda: self.connector(flipped), self.settings.connect_timeout, f'connect:{strategy.name}:{flipped.debug_host}'
			)

	@time_execution_async('--connect')
	async def connect(self, options: LaunchOptions | None = None, strategies: list[ConnectionStrategy] | None = None) -> SessionHandles:
		options = options or LaunchOptions()
		if strategies is None:
			strategies = await self.plan(options)

		start = time.monotonic()
		attempted: list[str] = []
		last_error: Exception | None = None

		for index, strategy in enumerate(strategies):
			attempted.append(strategy.name)
			logger.debug(f'🎯 Trying connection strategy {index + 1}/{len(strategies)}: {strategy.name}')
			try:
				session = await self._attempt(strategy)
			except Exception as e:
				last_error = e
				error_type = categorize_error(e)
				logger.warning(f'⚠️ Strategy {strategy.name} failed ({error_type.value}): {type(e).__name__}: {e}')
				if self.event_bus is not None:
					self.event_bus.dispatch(
						StrategyFailedEvent(strategy=strategy.name, index=index, error_type=error_type.value, message=str(e))
					)
				if index < len(strategies) - 1:
					await self._sleep(self.settings.backoff_delay(index))
				continue

			self.circuit_breaker.record_success()
			logger.info(f'✅ Browser connected using strategy {strategy.name} after {time.monotonic() - start:.1f}s')
			return session

		elapsed = time.monotonic() - start
		self.circuit_breaker.record_failure()
		category = categorize_error(last_error) if last_error is not None else BrowserErrorType.UNKNOWN
		guidance = failure_guidance(last_error, self.settings.refused_patterns)
		logger.error(f'❌ All {len(attempted)} connection strategies failed after {elapsed:.1f}s: {last_error}')
		raise BrowserInitializationError(
			f'Failed to initialize browser after trying {len(attempted)} strategies: {last_error}',
			category=category,
			guidance=guidance,
			attempted_strategies=attempted,
			elapsed=elapsed,
			last_error=last_error,
		) from last_error
