"""Lifecycle events published by the session manager."""

import inspect
from typing import Any

from bubus import BaseEvent
from pydantic import Field


class BrowserConnectedEvent(BaseEvent):
	"""A new browser session is live."""

	cdp_url: str | None = None
	strategy: str | None = None
	elapsed: float = 0.0

	event_timeout: float | None = 30.0  # seconds


class BrowserStoppedEvent(BaseEvent):
	"""The browser session was torn down."""

	reason: str | None = None

	event_timeout: float | None = 30.0  # seconds


class BrowserErrorEvent(BaseEvent):
	"""An error occurred while acquiring a browser session."""

	error_type: str
	message: str
	details: dict[str, Any] = Field(default_factory=dict)

	event_timeout: float | None = 30.0  # seconds


class StrategyFailedEvent(BaseEvent):
	"""A single connection strategy failed, the supervisor moves on to the next one."""

	strategy: str
	index: int
	error_type: str
	message: str

	event_timeout: float | None = 10.0  # seconds


def _check_event_names_dont_overlap():
	"""
	check that event names defined in this file are valid and non-overlapping
	"""
	event_names = {
		name.split('[')[0]
		for name in globals().keys()
		if not name.startswith('_')
		and inspect.isclass(globals()[name])
		and issubclass(globals()[name], BaseEvent)
		and name != 'BaseEvent'
	}
	for name_a in event_names:
		assert name_a.endswith('Event'), f'Event with name {name_a} does not end with "Event"'
		for name_b in event_names:
			if name_a != name_b:  # Skip self-comparison
				assert name_a not in name_b, (
					f'Event with name {name_a} is a substring of {name_b}, all events must be completely unique to avoid find-and-replace accidents'
				)


# overlapping event names are a nightmare to trace and rename later, dont do it!
_check_event_names_dont_overlap()
