from brave_mcp.browser.strategies import DEFENSIVE_ARGS, STEALTH_ARGS, build_strategies
from brave_mcp.browser.views import LaunchOptions


def test_full_table_order_when_everything_differs():
	options = LaunchOptions(
		headless=True,
		args=['--window-size=1280,800'],
		extension_paths=['/tmp/ext'],
		custom_config={'slow_mo': 50},
	)
	strategies = build_strategies(options, debug_port=9222)

	assert [s.name for s in strategies] == ['full', 'no-extensions', 'default-flags', 'minimal']

	full, no_extensions, default_flags, minimal = strategies
	assert '--window-size=1280,800' in full.args
	assert full.extension_paths == ('/tmp/ext',)
	assert full.connect_options == {'slow_mo': 50}

	assert no_extensions.extension_paths == ()
	assert '--window-size=1280,800' in no_extensions.args

	assert '--window-size=1280,800' not in default_flags.args
	assert default_flags.args == tuple(STEALTH_ARGS)

	assert minimal.args == tuple(DEFENSIVE_ARGS)
	assert minimal.connect_options == {}


def test_identical_strategies_are_dropped():
	strategies = build_strategies(LaunchOptions(headless=True))
	# no caller flags or extensions: full, no-extensions and default-flags would launch the same way
	assert [s.name for s in strategies] == ['full', 'minimal']


def test_every_strategy_carries_port_host_and_proxy():
	options = LaunchOptions(headless=False, proxy='http://proxy.local:3128', args=['--lang=de'])
	strategies = build_strategies(options, debug_port=9333, debug_host='localhost')

	for strategy in strategies:
		assert strategy.debug_port == 9333
		assert strategy.debug_host == 'localhost'
		assert strategy.proxy == 'http://proxy.local:3128'
		assert strategy.headless is False


def test_port_zero_means_system_assigned():
	strategies = build_strategies(LaunchOptions(headless=True))
	assert all(strategy.debug_port == 0 for strategy in strategies)


def test_caller_flags_are_not_duplicated():
	strategies = build_strategies(LaunchOptions(headless=True, args=['--no-sandbox', '--lang=de']))
	assert strategies[0].args.count('--no-sandbox') == 1


def test_headless_falls_back_to_environment(monkeypatch):
	monkeypatch.setenv('HEADLESS', 'true')
	assert all(s.headless for s in build_strategies(LaunchOptions()))

	monkeypatch.setenv('HEADLESS', 'false')
	assert not any(s.headless for s in build_strategies(LaunchOptions()))

	# explicit option beats the environment
	monkeypatch.setenv('HEADLESS', 'true')
	assert not any(s.headless for s in build_strategies(LaunchOptions(headless=False)))


def test_alternate_host_flips_loopback_name():
	strategy = build_strategies(LaunchOptions(headless=True), debug_host='127.0.0.1')[0]
	flipped = strategy.with_alternate_host()
	assert flipped.debug_host == 'localhost'
	assert flipped.with_alternate_host().debug_host == '127.0.0.1'
	assert flipped.name == strategy.name
	assert strategy.debug_host == '127.0.0.1'
