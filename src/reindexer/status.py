"""마이그레이션 진행 상태 레코드.

오케스트레이터만 쓰고, 헬스체크는 어느 스레드에서든 `snapshot()`으로 읽습니다.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum


class MigrationPhase(str, Enum):
    """오케스트레이터 상태 머신의 단계."""

    NOT_STARTED = "not started"
    HEALTH_GATE = "health gate"
    ALIAS_CHECK = "alias check"
    UP_TO_DATE = "up to date"
    PROVISIONING = "provisioning"
    READ_ONLY_LOCK = "read-only lock"
    COPYING = "copying"
    CUTOVER_PENDING = "cutover pending"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusSnapshot:
    """특정 시점의 상태 사본."""

    phase: MigrationPhase
    progress: str
    migration_check: bool
    migration_error: BaseException | None


class MigrationStatus:
    """프로세스 단일 인스턴스 마이그레이션 상태.

    - progress: 사람이 읽는 단계/카운터 문자열
    - migration_check: 마지막 시도가 (성공/실패와 무관하게) 끝났는지
    - migration_error: 마지막 시도의 최종 오류. 성공 시 None
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phase = MigrationPhase.NOT_STARTED
        self._progress = MigrationPhase.NOT_STARTED.value
        self._migration_check = False
        self._migration_error: BaseException | None = None

    def begin(self) -> None:
        """새 시도 시작. 이전 결과는 이번 시도가 끝날 때까지 진행 중으로 보고."""
        with self._lock:
            self._phase = MigrationPhase.HEALTH_GATE
            self._progress = "starting"
            self._migration_check = False
            self._migration_error = None

    def enter(self, phase: MigrationPhase) -> None:
        with self._lock:
            self._phase = phase

    def set_progress(self, progress: str) -> None:
        with self._lock:
            self._progress = progress

    def finish(self, error: BaseException | None) -> None:
        """시도 결과 기록. 시도당 한 번만 호출."""
        with self._lock:
            self._phase = MigrationPhase.FAILED if error is not None else MigrationPhase.DONE
            self._migration_error = error
            self._migration_check = True

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(
                phase=self._phase,
                progress=self._progress,
                migration_check=self._migration_check,
                migration_error=self._migration_error,
            )

    @property
    def progress(self) -> str:
        return self.snapshot().progress

    @property
    def phase(self) -> MigrationPhase:
        return self.snapshot().phase
