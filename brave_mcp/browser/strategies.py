"""Ordered table of connection strategies, from richest configuration to minimal fallback."""

import logging

from brave_mcp.browser.views import LOOPBACK_IPV4, ConnectionStrategy, LaunchOptions

logger = logging.getLogger(__name__)

# flags every strategy keeps, including the minimal fallback
DEFENSIVE_ARGS = [
	'--no-sandbox',
	'--disable-dev-shm-usage',
	'--no-first-run',
	'--no-default-browser-check',
]

STEALTH_ARGS = [
	*DEFENSIVE_ARGS,
	'--disable-blink-features=AutomationControlled',
	'--disable-background-timer-throttling',
	'--disable-backgrounding-occluded-windows',
	'--disable-renderer-backgrounding',
	'--disable-features=TranslateUI',
	'--disable-ipc-flooding-protection',
	'--disable-component-update',
	'--disable-default-apps',
	'--disable-print-preview',
	'--allow-running-insecure-content',
	'--ignore-certificate-errors',
]


def _dedupe(args: list[str]) -> tuple[str, ...]:
	return tuple(dict.fromkeys(args))


def build_strategies(
	options: LaunchOptions,
	*,
	debug_port: int = 0,
	debug_host: str = LOOPBACK_IPV4,
) -> list[ConnectionStrategy]:
	"""Build the fixed-priority strategy list for one supervisor run.

	Each later strategy strips more optional configuration. Strategies that would launch
	exactly like an earlier one are dropped.
	"""
	headless = options.resolved_headless()
	connect_options = {**options.connect_options, **options.custom_config}
	common = dict(
		headless=headless,
		executable_path=options.executable_path,
		proxy=options.proxy,
		debug_port=debug_port,
		debug_host=debug_host,
	)

	candidates = [
		ConnectionStrategy(
			name='full',
			args=_dedupe([*STEALTH_ARGS, *options.args]),
			extension_paths=tuple(options.extension_paths),
			connect_options=connect_options,
			**common,
		),
		ConnectionStrategy(
			name='no-extensions',
			args=_dedupe([*STEALTH_ARGS, *options.args]),
			connect_options=connect_options,
			**common,
		),
		ConnectionStrategy(
			name='default-flags',
			args=_dedupe(STEALTH_ARGS),
			connect_options=connect_options,
			**common,
		),
		ConnectionStrategy(
			name='minimal',
			args=_dedupe(DEFENSIVE_ARGS),
			**common,
		),
	]

	strategies: list[ConnectionStrategy] = []
	seen: set[tuple] = set()
	for strategy in candidates:
		signature = strategy.launch_signature()
		if signature in seen:
			continue
		seen.add(signature)
		strategies.append(strategy)

	logger.debug(f'🧭 Connection strategies: {[s.name for s in strategies]} (port={debug_port or "auto"}, host={debug_host})')
	return strategies
