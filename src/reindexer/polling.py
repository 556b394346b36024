"""취소 가능한 폴링 대기."""

from __future__ import annotations

import threading
import time

from reindexer.errors import MigrationCancelledError


def wait_interval(interval_s: float, cancel: threading.Event | None, phase: str) -> None:
    """한 폴링 간격만큼 대기.

    Raises:
        MigrationCancelledError: 대기 전 또는 대기 중 cancel이 설정된 경우.
    """
    if cancel is None:
        time.sleep(interval_s)
        return
    if cancel.wait(interval_s):
        raise MigrationCancelledError(phase)


def check_cancelled(cancel: threading.Event | None, phase: str) -> None:
    if cancel is not None and cancel.is_set():
        raise MigrationCancelledError(phase)
