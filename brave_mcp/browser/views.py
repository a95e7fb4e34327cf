from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from brave_mcp.config import CONFIG

LOCALHOST = 'localhost'
LOOPBACK_IPV4 = '127.0.0.1'

# every throwaway --user-data-dir we create starts with this
TEMP_DIR_PREFIX = 'brave-mcp-'

DEFAULT_REFUSED_PATTERNS: tuple[str, ...] = (
	'econnrefused',
	'connection refused',
	'connect call failed',
	'cannot connect to host',
)


class BrowserErrorType(str, Enum):
	"""Closed taxonomy of browser/session failure categories."""

	FRAME_DETACHED = 'FRAME_DETACHED'
	SESSION_CLOSED = 'SESSION_CLOSED'
	TARGET_CLOSED = 'TARGET_CLOSED'
	PROTOCOL_ERROR = 'PROTOCOL_ERROR'
	NAVIGATION_TIMEOUT = 'NAVIGATION_TIMEOUT'
	ELEMENT_NOT_FOUND = 'ELEMENT_NOT_FOUND'
	TIMEOUT = 'TIMEOUT'
	DEPTH_EXCEEDED = 'DEPTH_EXCEEDED'
	CIRCUIT_OPEN = 'CIRCUIT_OPEN'
	UNKNOWN = 'UNKNOWN'


class CircuitState(str, Enum):
	CLOSED = 'closed'
	OPEN = 'open'
	HALF_OPEN = 'half-open'


class ValidationState(str, Enum):
	IDLE = 'idle'
	IN_FLIGHT = 'in-flight'


# Pydantic
class CircuitBreakerState(BaseModel):
	"""Snapshot of the connection circuit breaker"""

	failure_count: int = Field(default=0, ge=0)
	last_failure_time: float = 0.0
	state: CircuitState = CircuitState.CLOSED


class PortProbeResult(BaseModel):
	port: int
	available: bool


class HostConnectivity(BaseModel):
	"""Which loopback names can host a listener on this machine"""

	localhost_ok: bool
	ipv4_ok: bool
	recommended_host: str = LOOPBACK_IPV4


class LaunchOptions(BaseModel):
	"""Caller-supplied options for a browser launch, merged with internal defaults."""

	model_config = ConfigDict(extra='forbid')

	headless: bool | None = None
	proxy: str | None = None
	args: list[str] = Field(default_factory=list)
	extension_paths: list[str] = Field(default_factory=list)
	executable_path: str | None = None
	connect_options: dict[str, Any] = Field(default_factory=dict)
	custom_config: dict[str, Any] = Field(default_factory=dict)

	def resolved_headless(self) -> bool:
		"""Explicit option first, then the HEADLESS environment variable."""
		if self.headless is not None:
			return self.headless
		return CONFIG.HEADLESS


class ConnectionStrategy(BaseModel):
	"""One immutable configuration variant used to request a browser launch."""

	model_config = ConfigDict(frozen=True, extra='forbid')

	name: str
	headless: bool = False
	args: tuple[str, ...] = ()
	extension_paths: tuple[str, ...] = ()
	executable_path: str | None = None
	proxy: str | None = None
	debug_port: int = Field(default=0, ge=0, le=65535)  # 0 = let the browser pick
	debug_host: str = LOOPBACK_IPV4
	connect_options: dict[str, Any] = Field(default_factory=dict)

	def with_alternate_host(self) -> 'ConnectionStrategy':
		host = LOOPBACK_IPV4 if self.debug_host == LOCALHOST else LOCALHOST
		return self.model_copy(update={'debug_host': host})

	def launch_signature(self) -> tuple:
		"""Everything that affects the launch, i.e. all fields except the name."""
		return (
			self.headless,
			self.args,
			self.extension_paths,
			self.executable_path,
			self.proxy,
			self.debug_port,
			self.debug_host,
			repr(sorted(self.connect_options.items(), key=lambda item: item[0])),  # values may be unhashable
		)


class SessionHandles(BaseModel):
	"""The live browser + page pair owned by a SessionManager.

	Handed out by reference. Callers must not close it themselves, use SessionManager.close_session().
	"""

	model_config = ConfigDict(arbitrary_types_allowed=True, revalidate_instances='never')

	browser: Any
	page: Any
	process: Any | None = None  # psutil.Process of the spawned browser, if we own it
	playwright: Any | None = None
	user_data_dir: Path | None = None
	cdp_url: str | None = None
	strategy: str | None = None


def _default_connect_timeout() -> float:
	# Windows cold starts are slower
	return 180.0 if CONFIG.IS_WINDOWS else 120.0


class SessionManagerSettings(BaseModel):
	"""Tunable limits and deadlines for the session lifecycle (all durations in seconds)."""

	model_config = ConfigDict(extra='forbid')

	max_init_depth: int = Field(default=2, ge=1)
	failure_threshold: int = Field(default=5, ge=1)
	cooldown: float = 30.0
	validation_timeout: float = 5.0
	connect_timeout: float = Field(default_factory=_default_connect_timeout)
	backoff_base: float = 2.0
	backoff_step: float = 1.0
	debug_port_start: int = Field(default_factory=lambda: CONFIG.BRAVE_MCP_DEBUG_PORT_START)
	debug_port_end: int = Field(default_factory=lambda: CONFIG.BRAVE_MCP_DEBUG_PORT_END)
	host_probe_port: int = 19222
	refused_patterns: tuple[str, ...] = DEFAULT_REFUSED_PATTERNS
	pages_list_timeout: float = 5.0
	page_close_timeout: float = 2.0
	browser_close_timeout: float = 10.0
	playwright_stop_timeout: float = 5.0
	kill_grace_period: float = 1.0

	def backoff_delay(self, strategy_index: int) -> float:
		return self.backoff_base + self.backoff_step * strategy_index


class BrowserError(Exception):
	"""Base error for the session lifecycle layer."""

	category: BrowserErrorType = BrowserErrorType.UNKNOWN
	message: str
	details: dict[str, Any] | None = None

	def __init__(self, message: str, details: dict[str, Any] | None = None):
		self.message = message
		self.details = details
		super().__init__(message)

	def __str__(self) -> str:
		if self.details:
			return f'{self.message} ({self.details})'
		return self.message


class SessionTimeoutError(BrowserError, TimeoutError):
	category = BrowserErrorType.TIMEOUT

	def __init__(self, context: str, timeout: float):
		self.context = context
		self.timeout = timeout
		super().__init__(f'Operation timed out after {timeout:g}s in context: {context}')


class InitDepthExceededError(BrowserError):
	category = BrowserErrorType.DEPTH_EXCEEDED

	def __init__(self, max_depth: int):
		self.max_depth = max_depth
		super().__init__(
			f'Maximum browser initialization depth ({max_depth}) exceeded. This prevents infinite initialization loops.'
		)


class CircuitOpenError(BrowserError):
	category = BrowserErrorType.CIRCUIT_OPEN

	def __init__(self, retry_after: float, failure_count: int):
		self.retry_after = retry_after
		super().__init__(
			f'Circuit breaker is open. Browser initialization is temporarily disabled, retry in {retry_after:.1f}s.',
			details={'failure_count': failure_count},
		)


class SessionNotInitializedError(BrowserError):
	category = BrowserErrorType.SESSION_CLOSED

	def __init__(self):
		super().__init__('Browser not initialized. Call initialize_session() first.')


class BrowserInitializationError(BrowserError):
	"""Every connection strategy failed."""

	def __init__(
		self,
		message: str,
		*,
		category: BrowserErrorType,
		guidance: list[str],
		attempted_strategies: list[str],
		elapsed: float,
		last_error: BaseException | None,
	):
		self.category = category
		self.guidance = guidance
		self.attempted_strategies = attempted_strategies
		self.elapsed = elapsed
		self.last_error = last_error
		super().__init__(
			message,
			details={
				'category': category.value,
				'strategies': attempted_strategies,
				'elapsed': round(elapsed, 2),
			},
		)
