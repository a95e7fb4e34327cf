"""Tests for debug port allocation and loopback host diagnostics."""

import asyncio

import pytest

from brave_mcp.browser import ports
from brave_mcp.browser.ports import find_available_port, is_port_available, probe_host_connectivity, probe_ports


async def _noop(reader, writer):
	writer.close()


@pytest.fixture
async def occupied_port():
	"""A loopback port held by a live listener for the duration of the test."""
	server = await asyncio.start_server(_noop, host='127.0.0.1', port=0)
	port = server.sockets[0].getsockname()[1]
	yield port
	server.close()
	await server.wait_closed()


async def test_bound_port_is_unavailable(occupied_port):
	assert await is_port_available(occupied_port) is False


async def test_port_is_available_after_listener_closes():
	server = await asyncio.start_server(_noop, host='127.0.0.1', port=0)
	port = server.sockets[0].getsockname()[1]
	server.close()
	await server.wait_closed()

	assert await is_port_available(port) is True


async def test_invalid_port_reports_unavailable_instead_of_raising():
	assert await is_port_available(70000) is False


async def test_find_available_port_skips_occupied(occupied_port):
	found = await find_available_port(occupied_port, occupied_port + 20)
	assert found is not None
	assert occupied_port < found <= occupied_port + 20


async def test_find_available_port_returns_none_when_range_is_exhausted(occupied_port):
	assert await find_available_port(occupied_port, occupied_port) is None


async def test_probe_ports_reports_each_port(occupied_port):
	results = await probe_ports(occupied_port, occupied_port)
	assert [(r.port, r.available) for r in results] == [(occupied_port, False)]


class TestHostConnectivity:
	@pytest.fixture
	def fake_availability(self, monkeypatch):
		answers: dict[str, bool] = {}

		async def fake_is_port_available(port, host='127.0.0.1'):
			return answers[host]

		monkeypatch.setattr(ports, 'is_port_available', fake_is_port_available)
		return answers

	async def test_prefers_ipv4_when_both_work(self, fake_availability):
		fake_availability.update({'localhost': True, '127.0.0.1': True})
		result = await probe_host_connectivity()
		assert result.recommended_host == '127.0.0.1'
		assert result.localhost_ok and result.ipv4_ok

	async def test_falls_back_to_localhost_when_ipv4_fails(self, fake_availability):
		fake_availability.update({'localhost': True, '127.0.0.1': False})
		result = await probe_host_connectivity()
		assert result.recommended_host == 'localhost'

	async def test_recommends_ipv4_when_nothing_works(self, fake_availability):
		fake_availability.update({'localhost': False, '127.0.0.1': False})
		result = await probe_host_connectivity()
		assert result.recommended_host == '127.0.0.1'
		assert not result.localhost_ok and not result.ipv4_ok


async def test_single_port_range_returns_free_port():
	server = await asyncio.start_server(_noop, host='127.0.0.1', port=0)
	port = server.sockets[0].getsockname()[1]
	server.close()
	await server.wait_closed()

	assert await find_available_port(port, port) == port
