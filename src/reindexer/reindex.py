"""Reindex 시작 및 완료 모니터링.

완료 판정은 문서 수 비교로만 합니다. 원본 인덱스는 이미 read-only이므로
문서 수가 고정되어 있고, reindex 작업은 문서를 추가만 합니다.

정체 감지:
    최근 STALL_WINDOW개의 관찰값을 슬라이딩 윈도우로 유지합니다.
    윈도우가 가득 찼을 때 가장 오래된 값과 최신 값이 같으면 정체로 보고
    오류 카운터를 올린 뒤 윈도우를 최신 값 하나로 초기화합니다.
    조회 오류도 같은 카운터를 올립니다.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from elasticsearch import ApiError, Elasticsearch, TransportError

from reindexer.errors import ReindexStalledError
from reindexer.polling import check_cancelled, wait_interval

logger = logging.getLogger(__name__)

STALL_WINDOW = 5
COPY_PHASE = "copying"

ProgressCallback = Callable[[str], None]


def format_progress(current: int, expected: int) -> str:
    return f"{current} / {expected} documents reindexed"


def count_documents(es: Elasticsearch, index_name: str) -> int:
    resp = es.count(index=index_name)
    return int(resp["count"])


def begin_copy(es: Elasticsearch, source_index: str, dest_index: str) -> int:
    """원본 문서 수를 읽고 비동기 reindex 시작.

    Returns:
        완료 판정에 쓸 기대 문서 수.
    """
    logger.info(f"reindexing {source_index} -> {dest_index}")

    # 대상 인덱스가 없으면 reindex 전에 실패하도록 먼저 조회
    count_documents(es, dest_index)
    expected = count_documents(es, source_index)

    resp = es.reindex(
        source={"index": source_index},
        dest={"index": dest_index},
        wait_for_completion=False,
    )
    logger.info(f"reindex task {resp.get('task')} started, expecting {expected} documents")
    return expected


def check_completion(es: Elasticsearch, index_name: str, expected: int) -> tuple[bool, int]:
    """대상 인덱스 문서 수가 기대값과 같은지 확인.

    Returns:
        (완료 여부, 현재 문서 수)
    """
    current = count_documents(es, index_name)
    return current == expected, current


@dataclass
class StallDetector:
    """최근 관찰값 윈도우 기반 정체 감지기."""

    window: int = STALL_WINDOW

    def __post_init__(self) -> None:
        self._history: deque[int] = deque(maxlen=self.window)

    def observe(self, count: int) -> bool:
        """관찰값 기록. 정체로 판정되면 True를 반환하고 윈도우를 초기화."""
        self._history.append(count)
        if len(self._history) < self.window:
            return False
        if self._history[0] != self._history[-1]:
            return False

        self._history.clear()
        self._history.append(count)
        return True


def wait_for_completion(
    es: Elasticsearch,
    index_name: str,
    expected: int,
    max_errors: int | None,
    interval_s: float,
    on_progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> int:
    """대상 인덱스 문서 수가 기대값에 도달할 때까지 폴링.

    Args:
        es: ES 클라이언트
        index_name: reindex 대상 인덱스
        expected: begin_copy가 반환한 기대 문서 수
        max_errors: 정체/조회 오류 허용 횟수. None이면 무제한
        interval_s: 폴링 간격 (초)
        on_progress: 매 폴링마다 진행 문자열을 받는 콜백
        cancel: 취소 토큰

    Returns:
        최종 문서 수.

    Raises:
        ReindexStalledError: 정체로 오류 한도에 도달한 경우.
        ApiError, TransportError: 조회 오류로 오류 한도에 도달한 경우.
        MigrationCancelledError: cancel이 설정된 경우.
    """
    errors = 0
    current = 0
    detector = StallDetector()

    while True:
        check_cancelled(cancel, COPY_PHASE)
        try:
            finished, current = check_completion(es, index_name, expected)
        except (ApiError, TransportError) as e:
            if on_progress is not None:
                on_progress(format_progress(current, expected))
            logger.error(f"failed to obtain reindex status for {index_name}: {e}")
            errors += 1
            if max_errors is not None and errors >= max_errors:
                raise
            wait_interval(interval_s, cancel, COPY_PHASE)
            continue

        if on_progress is not None:
            on_progress(format_progress(current, expected))
        if finished:
            logger.info(f"reindex into {index_name} complete: {current} documents")
            return current

        if detector.observe(current):
            logger.error(f"reindexing into {index_name} may have stalled at {current} documents")
            errors += 1
            if max_errors is not None and errors >= max_errors:
                raise ReindexStalledError(index_name, current)

        wait_interval(interval_s, cancel, COPY_PHASE)
