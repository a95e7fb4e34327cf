"""Fast-fail gates in front of browser initialization."""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from brave_mcp.browser.views import CircuitBreakerState, CircuitOpenError, CircuitState, InitDepthExceededError

logger = logging.getLogger(__name__)


class CircuitBreaker:
	"""Stops connection attempts after repeated whole-run failures.

	CLOSED: everything allowed, failures counted, opens at `threshold`.
	OPEN: everything rejected until `cooldown` seconds have passed since the last failure.
	HALF_OPEN: exactly one trial attempt; success closes, failure reopens and restarts the cooldown.

	Outcomes are reported once per supervisor run, never per strategy.
	"""

	def __init__(self, threshold: int = 5, cooldown: float = 30.0, clock: Callable[[], float] = time.monotonic):
		self.threshold = threshold
		self.cooldown = cooldown
		self._clock = clock
		self._failure_count = 0
		self._last_failure_time = 0.0
		self._state = CircuitState.CLOSED
		self._trial_in_flight = False

	@property
	def state(self) -> CircuitBreakerState:
		return CircuitBreakerState(
			failure_count=self._failure_count,
			last_failure_time=self._last_failure_time,
			state=self._state,
		)

	@property
	def is_open(self) -> bool:
		return self._state is CircuitState.OPEN

	def retry_after(self) -> float:
		if self._state is not CircuitState.OPEN:
			return 0.0
		return max(0.0, self.cooldown - (self._clock() - self._last_failure_time))

	def check(self) -> bool:
		"""Admit an attempt or raise CircuitOpenError. Performs no I/O.

		Returns True when the caller was handed the half-open trial and must end it with
		`record_success`, `record_failure` or `release_trial`. CLOSED admissions return False.
		"""
		if self._state is CircuitState.CLOSED:
			return False

		if self._state is CircuitState.OPEN:
			if self._clock() - self._last_failure_time >= self.cooldown:
				self._state = CircuitState.HALF_OPEN
				self._trial_in_flight = True
				logger.info(f'🔁 Circuit breaker half-open after {self.cooldown:g}s cooldown, allowing one trial connection')
				return True
			raise CircuitOpenError(self.retry_after(), self._failure_count)

		# HALF_OPEN: one trial at a time
		if self._trial_in_flight:
			raise CircuitOpenError(0.0, self._failure_count)
		self._trial_in_flight = True
		return True

	def record_success(self) -> None:
		if self._state is not CircuitState.CLOSED:
			logger.info('✅ Circuit breaker closed again after a successful connection')
		self._failure_count = 0
		self._state = CircuitState.CLOSED
		self._trial_in_flight = False

	def record_failure(self) -> None:
		self._failure_count += 1
		self._last_failure_time = self._clock()
		self._trial_in_flight = False

		if self._state is CircuitState.HALF_OPEN:
			self._state = CircuitState.OPEN
			logger.warning('🚫 Trial connection failed, circuit breaker re-opened')
		elif self._failure_count >= self.threshold and self._state is CircuitState.CLOSED:
			self._state = CircuitState.OPEN
			logger.warning(
				f'🚫 Circuit breaker opened after {self._failure_count} consecutive failures, '
				f'pausing browser initialization for {self.cooldown:g}s'
			)

	def release_trial(self) -> None:
		"""Free a half-open trial slot that ended without reporting success or failure."""
		self._trial_in_flight = False

	def reset(self) -> None:
		self._failure_count = 0
		self._last_failure_time = 0.0
		self._state = CircuitState.CLOSED
		self._trial_in_flight = False


class ReentrancyGuard:
	"""Bounds how many initializations may be in flight (nested or concurrent) at once."""

	def __init__(self, max_depth: int = 2):
		self.max_depth = max_depth
		self.depth = 0

	@contextmanager
	def admit(self) -> Iterator[int]:
		if self.depth >= self.max_depth:
			raise InitDepthExceededError(self.max_depth)
		self.depth += 1
		try:
			yield self.depth
		finally:
			# reset() may have zeroed the counter while we were inside
			self.depth = max(0, self.depth - 1)

	def reset(self) -> None:
		self.depth = 0
