"""Deadline racing for external-process-dependent calls, and failure categorization."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from brave_mcp.browser.views import DEFAULT_REFUSED_PATTERNS, BrowserError, BrowserErrorType, SessionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# first match wins, so more specific phrases must come before generic ones
_MESSAGE_CATEGORIES: list[tuple[tuple[str, ...], BrowserErrorType]] = [
	(('navigating frame was detached', 'frame was detached'), BrowserErrorType.FRAME_DETACHED),
	(('session closed',), BrowserErrorType.SESSION_CLOSED),
	(('target closed', 'target page, context or browser has been closed'), BrowserErrorType.TARGET_CLOSED),
	(('protocol error',), BrowserErrorType.PROTOCOL_ERROR),
	(('navigation timeout',), BrowserErrorType.NAVIGATION_TIMEOUT),
	(('element not found', 'no node found'), BrowserErrorType.ELEMENT_NOT_FOUND),
	(('timed out', 'timeout'), BrowserErrorType.TIMEOUT),
	(('initialization depth',), BrowserErrorType.DEPTH_EXCEEDED),
	(('circuit breaker',), BrowserErrorType.CIRCUIT_OPEN),
]


def _discard_outcome(task: asyncio.Future) -> None:
	# mark a late exception as retrieved so asyncio doesn't log "exception was never retrieved"
	if not task.cancelled():
		task.exception()


async def with_timeout(
	operation: Callable[[], Awaitable[T]] | Awaitable[T],
	timeout: float,
	context: str = 'unknown',
	*,
	cancel: bool = True,
) -> T:
	"""Race an operation against a deadline.

	Returns the operation's result (or re-raises its error) if it finishes within ``timeout`` seconds,
	otherwise raises SessionTimeoutError labelled with ``context``. The late outcome of the operation is
	discarded. With ``cancel=True`` the operation is also cancelled so it can release whatever it was
	holding (e.g. a half-spawned browser), with ``cancel=False`` it is merely abandoned.
	"""
	awaitable = operation() if callable(operation) else operation
	task = asyncio.ensure_future(awaitable)

	try:
		done, _ = await asyncio.wait({task}, timeout=timeout)
	except asyncio.CancelledError:
		task.cancel()
		raise

	if task in done:
		return task.result()

	task.add_done_callback(_discard_outcome)
	if cancel:
		task.cancel()
	logger.debug(f'⏰ {context} did not finish within {timeout:g}s')
	raise SessionTimeoutError(context, timeout)


def categorize_error(error: BaseException) -> BrowserErrorType:
	"""Map a failure onto the closed BrowserErrorType taxonomy (best effort, message based)."""
	if isinstance(error, BrowserError):
		return error.category

	message = str(error).lower()
	for needles, category in _MESSAGE_CATEGORIES:
		if any(needle in message for needle in needles):
			return category

	if isinstance(error, TimeoutError):
		return BrowserErrorType.TIMEOUT
	return BrowserErrorType.UNKNOWN


def is_connection_refused(error: BaseException, patterns: Iterable[str] = DEFAULT_REFUSED_PATTERNS) -> bool:
	if isinstance(error, ConnectionRefusedError):
		return True
	message = str(error).lower()
	return any(pattern.lower() in message for pattern in patterns)


def is_executable_missing(error: BaseException) -> bool:
	if isinstance(error, FileNotFoundError):
		return True
	message = str(error).lower()
	return 'enoent' in message or ('browser' in message and 'not found' in message)
