from typing import TYPE_CHECKING

# Type stubs for lazy imports
if TYPE_CHECKING:
	from .manager import SessionManager, default_session_manager
	from .views import LaunchOptions, SessionHandles, SessionManagerSettings


# Lazy imports mapping, the manager pulls in playwright
_LAZY_IMPORTS = {
	'SessionManager': ('.manager', 'SessionManager'),
	'default_session_manager': ('.manager', 'default_session_manager'),
	'LaunchOptions': ('.views', 'LaunchOptions'),
	'SessionHandles': ('.views', 'SessionHandles'),
	'SessionManagerSettings': ('.views', 'SessionManagerSettings'),
}


def __getattr__(name: str):
	"""Lazy import mechanism for heavy browser components."""
	if name in _LAZY_IMPORTS:
		module_path, attr_name = _LAZY_IMPORTS[name]
		full_module_path = f'brave_mcp.browser{module_path}'
		try:
			from importlib import import_module

			module = import_module(full_module_path)
			attr = getattr(module, attr_name)
			# Cache the imported attribute in the module's globals
			globals()[name] = attr
			return attr
		except ImportError as e:
			raise ImportError(f'Failed to import {name} from {full_module_path}: {e}') from e

	raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
	'SessionManager',
	'default_session_manager',
	'LaunchOptions',
	'SessionHandles',
	'SessionManagerSettings',
]
