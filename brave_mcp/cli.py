import asyncio
import sys

import click

from brave_mcp.browser.launcher import find_brave_path, kill_all_brave_processes
from brave_mcp.browser.manager import SessionManager
from brave_mcp.browser.ports import find_available_port, probe_host_connectivity
from brave_mcp.browser.views import BrowserError, BrowserInitializationError, LaunchOptions, SessionManagerSettings
from brave_mcp.logging_config import setup_logging


async def run_diagnostics(settings: SessionManagerSettings) -> int:
	connectivity = await probe_host_connectivity(settings.host_probe_port)
	port = await find_available_port(settings.debug_port_start, settings.debug_port_end, connectivity.recommended_host)

	click.echo(f'Brave executable:  {find_brave_path() or "NOT FOUND (set BRAVE_PATH)"}')
	click.echo(f'localhost usable:  {connectivity.localhost_ok}')
	click.echo(f'127.0.0.1 usable:  {connectivity.ipv4_ok}')
	click.echo(f'Recommended host:  {connectivity.recommended_host}')
	click.echo(
		f'First free port:   {port if port is not None else "none"} '
		f'(range {settings.debug_port_start}-{settings.debug_port_end})'
	)
	return 0


async def run_probe(manager: SessionManager, options: LaunchOptions) -> int:
	"""Launch a browser the same way the tool server would, check it answers, then close it."""
	try:
		session = await manager.initialize_session(options)
	except BrowserInitializationError as e:
		click.echo(f'❌ {e.message}', err=True)
		click.echo(f'   tried: {", ".join(e.attempted_strategies)}', err=True)
		for line in e.guidance:
			click.echo(f'   - {line}', err=True)
		return 1
	except BrowserError as e:
		click.echo(f'❌ {e}', err=True)
		return 1

	try:
		healthy = await manager.validate_session()
		click.echo(f'Strategy:  {session.strategy}')
		click.echo(f'CDP URL:   {session.cdp_url}')
		click.echo(f'Healthy:   {healthy}')
		return 0 if healthy else 1
	finally:
		await manager.close_session(reason='probe finished')


@click.command()
@click.option('--version', is_flag=True, help='Print version and exit')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--diagnose', is_flag=True, help='Check Brave discovery, loopback hosts and the debug port range')
@click.option('--probe', is_flag=True, help='Launch Brave once, validate the session and close it')
@click.option('--headless/--no-headless', default=None, help='Force headless on or off for --probe, defaults to the HEADLESS variable')
@click.option('--kill-all', is_flag=True, help='Kill all running Brave processes')
def main(version: bool, debug: bool, diagnose: bool, probe: bool, headless: bool | None, kill_all: bool):
	"""brave-mcp browser lifecycle tools

	Run with --diagnose first when the tool server cannot start a browser.
	"""
	if version:
		from importlib.metadata import version as package_version

		click.echo(package_version('brave-mcp'))
		sys.exit(0)

	setup_logging(log_level='debug' if debug else None, force_setup=True)

	if kill_all:
		killed = kill_all_brave_processes()
		click.echo(f'Killed {killed} Brave processes')

	settings = SessionManagerSettings()
	exit_code = 0
	if diagnose:
		exit_code = asyncio.run(run_diagnostics(settings))
	if probe:
		exit_code = asyncio.run(run_probe(SessionManager(settings=settings), LaunchOptions(headless=headless))) or exit_code

	if not (kill_all or diagnose or probe):
		click.echo(click.get_current_context().get_help())
	sys.exit(exit_code)


if __name__ == '__main__':
	main()
