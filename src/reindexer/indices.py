"""인덱스 생성 및 read-only 잠금."""

from __future__ import annotations

import logging
import threading
from typing import Any

from elasticsearch import ApiError, BadRequestError, Elasticsearch, TransportError

from reindexer.errors import IndexAlreadyExistsError, ReadOnlyStalledError
from reindexer.polling import check_cancelled, wait_interval

logger = logging.getLogger(__name__)

READ_ONLY_PHASE = "read-only lock"


def _error_type(err: ApiError) -> str | None:
    """ES 오류 응답의 error.type (예: resource_already_exists_exception)."""
    body = err.body
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("type")
    return None


def create_index(es: Elasticsearch, index_name: str, mapping: dict[str, Any]) -> None:
    """매핑과 함께 빈 인덱스 생성.

    Raises:
        IndexAlreadyExistsError: 같은 이름의 인덱스가 이미 존재할 때.
    """
    logger.info(f"creating new index {index_name}")
    logger.debug(f"index mapping: {mapping}")

    if es.indices.exists(index=index_name):
        raise IndexAlreadyExistsError(index_name)

    try:
        es.indices.create(index=index_name, body=mapping)
    except BadRequestError as e:
        # exists 확인 이후 다른 프로세스가 먼저 만든 경우
        if _error_type(e) == "resource_already_exists_exception":
            raise IndexAlreadyExistsError(index_name) from e
        raise


def set_read_only(es: Elasticsearch, index_name: str) -> None:
    """인덱스에 write block 설정."""
    logger.info(f"setting {index_name} to read-only")
    es.indices.put_settings(index=index_name, settings={"index.blocks.write": True})


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def is_read_only(es: Elasticsearch, index_name: str) -> bool:
    """index.blocks.write 설정이 true로 관찰되는지 확인."""
    resp = es.indices.get_settings(index=index_name)
    settings = resp.get(index_name, {}).get("settings", {})

    blocks = settings.get("index", {}).get("blocks")
    if blocks is None:
        logger.warning(f"index {index_name} settings has no blocks")
        return False

    if "write" not in blocks:
        logger.warning(f"index {index_name} settings has no write block")
        return False

    return _parse_bool(blocks["write"])


def wait_until_read_only(
    es: Elasticsearch,
    index_name: str,
    max_retries: int | None,
    interval_s: float,
    cancel: threading.Event | None = None,
) -> None:
    """write block이 관찰될 때까지 폴링.

    관찰에 실패할 때마다 write block을 다시 설정하고 한 간격 대기합니다.
    max_retries가 None이면 무제한 재시도합니다.

    Raises:
        ReadOnlyStalledError: max_retries번 연속 실패한 경우.
        MigrationCancelledError: cancel이 설정된 경우.
    """
    failures = 0
    while True:
        check_cancelled(cancel, READ_ONLY_PHASE)
        last_error: Exception | None = None
        try:
            if is_read_only(es, index_name):
                logger.info(f"index {index_name} is read-only")
                return
            logger.error(f"index {index_name} is not read-only")
        except (ApiError, TransportError) as e:
            logger.error(f"failed to obtain index settings for {index_name}: {e}")
            last_error = e

        failures += 1
        if max_retries is not None and failures >= max_retries:
            raise ReadOnlyStalledError(index_name) from last_error

        # retry
        try:
            set_read_only(es, index_name)
        except (ApiError, TransportError) as e:
            logger.error(f"failed to re-apply read-only on {index_name}: {e}")

        wait_interval(interval_s, cancel, READ_ONLY_PHASE)
