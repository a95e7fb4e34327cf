import logging
import sys

from brave_mcp.config import CONFIG


def setup_logging(stream=None, log_level=None, force_setup=False, debug_log_file=None):
	"""Setup logging configuration for brave-mcp.

	Args:
		stream: Output stream for logs (default: sys.stderr, stdout is reserved for tool-call frames)
		log_level: Override log level (default: uses CONFIG.BRAVE_MCP_LOGGING_LEVEL)
		force_setup: Force reconfiguration even if handlers already exist
		debug_log_file: Path to log file for debug level logs
	"""
	log_type = (log_level or CONFIG.BRAVE_MCP_LOGGING_LEVEL).lower()

	# Check if handlers are already set up
	if logging.getLogger().hasHandlers() and not force_setup:
		return logging.getLogger('brave_mcp')

	# Clear existing handlers
	root = logging.getLogger()
	root.handlers = []

	class BraveMCPFormatter(logging.Formatter):
		def __init__(self, fmt, log_level):
			super().__init__(fmt)
			self.log_level = log_level

		def format(self, record):
			# Only clean up names in INFO mode, keep everything in DEBUG mode
			if self.log_level > logging.DEBUG and isinstance(record.name, str) and record.name.startswith('brave_mcp.'):
				if 'SessionManager' in record.name:
					record.name = 'SessionManager'
				else:
					record.name = record.name.split('.')[-1]
			return super().format(record)

	if log_type == 'debug':
		level = logging.DEBUG
	elif log_type == 'warning':
		level = logging.WARNING
	elif log_type == 'error':
		level = logging.ERROR
	else:
		level = logging.INFO

	console = logging.StreamHandler(stream or sys.stderr)
	console.setLevel(level)
	console.setFormatter(BraveMCPFormatter('%(levelname)-8s [%(name)s] %(message)s', level))
	root.addHandler(console)

	file_handlers = []
	if debug_log_file:
		debug_handler = logging.FileHandler(debug_log_file, encoding='utf-8')
		debug_handler.setLevel(logging.DEBUG)
		debug_handler.setFormatter(BraveMCPFormatter('%(asctime)s - %(levelname)-8s [%(name)s] %(message)s', logging.DEBUG))
		file_handlers.append(debug_handler)
		root.addHandler(debug_handler)

	# use DEBUG if debug file logging is enabled
	effective_log_level = logging.DEBUG if debug_log_file else level
	root.setLevel(effective_log_level)

	brave_logger = logging.getLogger('brave_mcp')
	brave_logger.propagate = False  # Don't propagate to root logger
	brave_logger.handlers = []
	brave_logger.addHandler(console)
	for handler in file_handlers:
		brave_logger.addHandler(handler)
	brave_logger.setLevel(effective_log_level)

	# lifecycle events go through bubus, keep its own chatter at INFO at most
	bubus_logger = logging.getLogger('bubus')
	bubus_logger.propagate = False
	bubus_logger.handlers = []
	bubus_logger.addHandler(console)
	for handler in file_handlers:
		bubus_logger.addHandler(handler)
	bubus_logger.setLevel(max(effective_log_level, logging.INFO))

	third_party_loggers = [
		'playwright',
		'asyncio',
		'aiohttp',
		'aiohttp.access',
		'websockets',
		'urllib3',
		'psutil',
	]
	for logger_name in third_party_loggers:
		third_party = logging.getLogger(logger_name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	return brave_logger
