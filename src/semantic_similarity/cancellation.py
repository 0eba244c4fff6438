# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Cooperative cancellation for long-running analyses.
"""

import threading
from typing import Optional


class OperationCancelled(Exception):
    """Raised when an analysis is aborted through its CancellationToken."""


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and workers."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, message: str = "Operation was cancelled.") -> None:
        if self._event.is_set():
            raise OperationCancelled(message)


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    """Return token, or a fresh never-cancelled one."""
    return token if token is not None else CancellationToken()
