"""SessionManager: owns the one live browser session and guards how it is (re)created."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from functools import cache
from typing import Any

from bubus import EventBus
from uuid_extensions import uuid7str

from brave_mcp.browser.circuit_breaker import CircuitBreaker, ReentrancyGuard
from brave_mcp.browser.events import BrowserConnectedEvent, BrowserErrorEvent, BrowserStoppedEvent
from brave_mcp.browser.launcher import BraveLauncher, Connector
from brave_mcp.browser.supervisor import ConnectionSupervisor
from brave_mcp.browser.teardown import teardown_session
from brave_mcp.browser.timeouts import categorize_error, with_timeout
from brave_mcp.browser.views import (
	BrowserError,
	LaunchOptions,
	SessionHandles,
	SessionManagerSettings,
	SessionNotInitializedError,
	ValidationState,
)


class SessionManager:
	"""Hands out a single shared browser session to tool handlers.

	Handlers call ``initialize_session()`` before touching the browser. A healthy existing
	session is reused, a stale one is torn down and replaced. Creation is bounded by a
	re-entrancy depth guard and a circuit breaker, both checked before any I/O.

	Handlers must never close the returned browser or page themselves, use ``close_session()``.
	"""

	def __init__(
		self,
		connector: Connector | None = None,
		settings: SessionManagerSettings | None = None,
		clock: Callable[[], float] = time.monotonic,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
		event_bus: EventBus | None = None,
	):
		self.id = uuid7str()
		self.settings = settings or SessionManagerSettings()
		self.event_bus = event_bus or EventBus(name=f'SessionManager_{self.id[-4:]}')
		self.circuit_breaker = CircuitBreaker(self.settings.failure_threshold, self.settings.cooldown, clock=clock)
		self.guard = ReentrancyGuard(self.settings.max_init_depth)
		self.supervisor = ConnectionSupervisor(
			connector or BraveLauncher().connect,
			self.circuit_breaker,
			self.settings,
			event_bus=self.event_bus,
			sleep=sleep,
		)
		self._session: SessionHandles | None = None
		self._validation = ValidationState.IDLE

	@property
	def logger(self) -> logging.Logger:
		return logging.getLogger(f'brave_mcp.{self}')

	def __str__(self) -> str:
		return f'SessionManager#{self.id[-4:]}'

	def __repr__(self) -> str:
		strategy = self._session.strategy if self._session else None
		return f'{self} (session={strategy}, breaker={self.circuit_breaker.state.state.value}, depth={self.guard.depth})'

	@property
	def session(self) -> SessionHandles | None:
		return self._session

	@property
	def browser(self) -> Any | None:
		return self._session.browser if self._session else None

	@property
	def page(self) -> Any | None:
		return self._session.page if self._session else None

	def get_session(self) -> SessionHandles:
		if self._session is None:
			raise SessionNotInitializedError()
		return self._session

	async def _probe(self, session: SessionHandles) -> None:
		cdp_session = await session.browser.new_browser_cdp_session()
		try:
			await cdp_session.send('Browser.getVersion')
		finally:
			await cdp_session.detach()
		await session.page.evaluate('() => true')

	async def validate_session(self) -> bool:
		"""Cheap liveness probe of the current session.

		Only one probe runs at a time, a caller arriving while one is in flight gets False
		immediately instead of stacking another round-trip onto a possibly hung browser.
		"""
		if self._validation is ValidationState.IN_FLIGHT:
			self.logger.debug('Session validation already in progress, treating session as unvalidated')
			return False

		session = self._session
		if session is None:
			return False

		self._validation = ValidationState.IN_FLIGHT
		try:
			await with_timeout(self._probe(session), self.settings.validation_timeout, 'validate-session')
			return True
		except Exception as e:
			self.logger.debug(f'Session validation failed ({categorize_error(e).value}): {type(e).__name__}: {e}')
			return False
		finally:
			self._validation = ValidationState.IDLE

	async def initialize_session(self, options: LaunchOptions | None = None) -> SessionHandles:
		"""Return a live session, reusing the current one when it still answers."""
		with self.guard.admit() as depth:
			holds_trial = self.circuit_breaker.check()
			try:
				existing = self._session
				if existing is not None:
					healthy = await self.validate_session()
					if healthy and self._session is existing:
						self.logger.debug('♻️ Reusing existing browser session')
						return existing
					if self._session is existing:
						self.logger.info('🩺 Existing browser session is unresponsive, replacing it')
						await self.close_session(reason='stale')
					elif self._session is not None:
						# replaced while we were validating, the replacement is fresh
						return self._session
					else:
						self.logger.debug('Session was closed while validating it, starting a new one')

				self.logger.debug(f'🚀 Initializing browser session (depth={depth})')
				started = time.monotonic()
				try:
					session = await self.supervisor.connect(options or LaunchOptions())
				except BrowserError as e:
					await self._dispatch(
						BrowserErrorEvent(
							error_type=e.category.value,
							message=f'Failed to start browser: {type(e).__name__} {e.message}',
							details=e.details or {},
						)
					)
					raise

				if self._session is not None:
					# a concurrent initialization won the race, keep its session
					self.logger.debug('Another initialization installed a session first, discarding ours')
					await teardown_session(session, self.settings)
					return self._session

				self._session = session
				await self._dispatch(
					BrowserConnectedEvent(cdp_url=session.cdp_url, strategy=session.strategy, elapsed=time.monotonic() - started)
				)
				return session
			finally:
				if holds_trial:
					self.circuit_breaker.release_trial()

	async def close_session(self, reason: str = 'closed') -> None:
		"""Tear down the current session. Safe to call repeatedly, never raises."""
		session = self._session
		if session is None:
			return
		# clear first so nobody picks up a half-closed session while teardown awaits
		self._session = None

		self.logger.debug(f'🛑 Closing browser session (reason={reason})')
		try:
			await teardown_session(session, self.settings)
		except Exception as e:
			self.logger.debug(f'Teardown raised unexpectedly: {type(e).__name__}: {e}')
		await self._dispatch(BrowserStoppedEvent(reason=reason))

	async def reinitialize_session(self, options: LaunchOptions | None = None) -> SessionHandles:
		"""Throw away the current session and start a fresh one."""
		self.guard.reset()
		await self.close_session(reason='reinitialize')
		return await self.initialize_session(options)

	def reset(self) -> None:
		self.circuit_breaker.reset()
		self.guard.reset()
		self._validation = ValidationState.IDLE

	async def _dispatch(self, event) -> None:
		try:
			await self.event_bus.dispatch(event)
		except Exception as e:
			self.logger.debug(f'Event handler for {type(event).__name__} failed: {type(e).__name__}: {e}')


@cache
def default_session_manager() -> SessionManager:
	"""The process-wide SessionManager shared by every tool handler."""
	return SessionManager()
