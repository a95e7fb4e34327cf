"""Debug-port allocation and loopback host diagnostics."""

import asyncio
import logging

from brave_mcp.browser.views import LOCALHOST, LOOPBACK_IPV4, HostConnectivity, PortProbeResult

logger = logging.getLogger(__name__)

HOST_PROBE_PORT = 19222


async def _noop_client_handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
	writer.close()


async def is_port_available(port: int, host: str = LOOPBACK_IPV4) -> bool:
	"""True iff a listener can be bound on host:port right now. Never raises."""
	try:
		server = await asyncio.start_server(_noop_client_handler, host=host, port=port)
	except (OSError, ValueError):
		return False
	except Exception as e:
		logger.debug(f'Unexpected error probing {host}:{port}: {type(e).__name__}: {e}')
		return False

	server.close()
	try:
		await server.wait_closed()
	except Exception:
		pass
	return True


async def find_available_port(start: int = 9222, end: int = 9322, host: str = LOOPBACK_IPV4) -> int | None:
	"""Return the first bindable port in [start, end], or None if the range is exhausted.

	Callers fall back to port 0 (system-assigned) on None.
	"""
	for port in range(start, end + 1):
		if await is_port_available(port, host):
			return port
	logger.warning(f'No free debug port in {start}-{end}, falling back to a system-assigned port')
	return None


async def probe_ports(start: int, end: int, host: str = LOOPBACK_IPV4) -> list[PortProbeResult]:
	return [PortProbeResult(port=port, available=await is_port_available(port, host)) for port in range(start, end + 1)]


async def probe_host_connectivity(probe_port: int = HOST_PROBE_PORT) -> HostConnectivity:
	"""Check whether `localhost` and `127.0.0.1` can each host a listener.

	127.0.0.1 is preferred whenever it works: some Windows setups resolve `localhost` to ::1 or
	through a broken hosts file, which the browser's debug endpoint does not listen on.
	"""
	localhost_ok = await is_port_available(probe_port, LOCALHOST)
	ipv4_ok = await is_port_available(probe_port, LOOPBACK_IPV4)

	if ipv4_ok or not localhost_ok:
		recommended = LOOPBACK_IPV4
	else:
		recommended = LOCALHOST

	result = HostConnectivity(localhost_ok=localhost_ok, ipv4_ok=ipv4_ok, recommended_host=recommended)
	logger.debug(f'🔌 Host connectivity: localhost={localhost_ok} 127.0.0.1={ipv4_ok} -> using {recommended}')
	return result
