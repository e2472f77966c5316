"""Notification capability used by the core to reach the presentation layer.

The core never renders anything itself. It hands a structured
:class:`~loginflow.models.Notification` to whatever :class:`Notifier` the
application supplied.
"""

from __future__ import annotations

from typing import Protocol

from loginflow.models import Notification


class Notifier(Protocol):
    """Anything that can present a :class:`~loginflow.models.Notification`."""

    def notify(self, notification: Notification) -> None: ...


class NullNotifier:
    """Discards every notification."""

    def notify(self, notification: Notification) -> None:
        return None
