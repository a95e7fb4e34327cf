"""Tests for the default launch collaborator helpers (no real browser is started)."""

import asyncio
import stat

import pytest
from pytest_httpserver import HTTPServer

from brave_mcp.browser import launcher
from brave_mcp.browser.launcher import (
	BraveLauncher,
	build_launch_args,
	find_brave_path,
	read_devtools_active_port,
	wait_for_cdp_url,
)
from brave_mcp.browser.views import ConnectionStrategy

from conftest import FakeProcess


class TestWaitForCdpUrl:
	async def test_returns_url_once_version_endpoint_answers(self, httpserver: HTTPServer):
		httpserver.expect_request('/json/version').respond_with_json(
			{'Browser': 'Brave/1.0', 'webSocketDebuggerUrl': f'ws://{httpserver.host}:{httpserver.port}/devtools/browser/x'}
		)

		url = await wait_for_cdp_url(httpserver.host, httpserver.port, timeout=5)

		assert url == f'http://{httpserver.host}:{httpserver.port}/'

	async def test_keeps_polling_through_startup_errors(self, httpserver: HTTPServer):
		httpserver.expect_ordered_request('/json/version').respond_with_data('starting', status=502)
		httpserver.expect_ordered_request('/json/version').respond_with_json({'Browser': 'Brave/1.0'})

		url = await wait_for_cdp_url(httpserver.host, httpserver.port, timeout=5)

		assert url.endswith(f':{httpserver.port}/')

	async def test_refused_port_raises_connection_refused(self):
		server = await asyncio.start_server(lambda r, w: w.close(), host='127.0.0.1', port=0)
		port = server.sockets[0].getsockname()[1]
		server.close()
		await server.wait_closed()

		with pytest.raises(ConnectionRefusedError):
			await wait_for_cdp_url('127.0.0.1', port, timeout=0.3)

	async def test_fails_fast_when_browser_process_exits(self):
		process = FakeProcess()
		process.running = False

		with pytest.raises(RuntimeError, match='exited unexpectedly'):
			await wait_for_cdp_url('127.0.0.1', 1, timeout=5, process=process)


class TestFindBravePath:
	def test_env_override_wins(self, monkeypatch, tmp_path):
		brave = tmp_path / 'brave'
		brave.write_text('#!/bin/sh\n')
		brave.chmod(brave.stat().st_mode | stat.S_IEXEC)
		monkeypatch.setenv('BRAVE_PATH', str(brave))

		assert find_brave_path() == str(brave)

	def test_puppeteer_variable_is_honoured(self, monkeypatch, tmp_path):
		brave = tmp_path / 'brave-browser'
		brave.write_text('')
		monkeypatch.delenv('BRAVE_PATH', raising=False)
		monkeypatch.setenv('PUPPETEER_EXECUTABLE_PATH', str(brave))

		assert find_brave_path() == str(brave)

	def test_missing_override_falls_back_to_detection(self, monkeypatch, tmp_path):
		monkeypatch.setenv('BRAVE_PATH', str(tmp_path / 'does-not-exist'))
		monkeypatch.setattr(launcher, 'BRAVE_PATH_PATTERNS', {})
		monkeypatch.setattr(launcher.shutil, 'which', lambda command: None)

		assert find_brave_path() is None

	async def test_connect_without_executable_raises_file_not_found(self, monkeypatch):
		monkeypatch.setattr(launcher, 'find_brave_path', lambda: None)

		with pytest.raises(FileNotFoundError, match='BRAVE_PATH'):
			await BraveLauncher().connect(ConnectionStrategy(name='full'))


def test_build_launch_args(tmp_path):
	strategy = ConnectionStrategy(
		name='full',
		headless=True,
		args=('--no-sandbox',),
		extension_paths=('/ext/a', '/ext/b'),
		proxy='http://proxy.local:3128',
		debug_port=9229,
	)

	args = build_launch_args(strategy, tmp_path)

	assert args[0] == '--remote-debugging-port=9229'
	assert f'--user-data-dir={tmp_path}' in args
	assert '--no-sandbox' in args
	assert '--headless=new' in args
	assert '--proxy-server=http://proxy.local:3128' in args
	assert '--load-extension=/ext/a,/ext/b' in args
	assert '--disable-extensions-except=/ext/a,/ext/b' in args
	assert args[-1] == 'about:blank'


def test_build_launch_args_minimal(tmp_path):
	args = build_launch_args(ConnectionStrategy(name='minimal'), tmp_path)

	assert '--remote-debugging-port=0' in args
	assert not any(arg.startswith(('--headless', '--proxy-server', '--load-extension')) for arg in args)


async def test_read_devtools_active_port(tmp_path):
	(tmp_path / 'DevToolsActivePort').write_text('41234\n/devtools/browser/abc\n')

	assert await read_devtools_active_port(tmp_path, timeout=1) == 41234


async def test_read_devtools_active_port_times_out(tmp_path):
	with pytest.raises(TimeoutError):
		await read_devtools_active_port(tmp_path, timeout=0.2)
