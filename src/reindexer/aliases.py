"""Alias 조회 및 전환.

- resolve_alias: alias가 가리키는 인덱스를 확인하고 요구 인덱스명과 비교
- update_alias: remove + add를 단일 `_aliases` 요청으로 원자적으로 수행
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import semver
from elasticsearch import Elasticsearch

from reindexer.errors import InconsistentAliasError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasResolution:
    """alias 조회 결과.

    Attributes:
        update_required: 마이그레이션 필요 여부
        current_index: 현재 alias가 가리키는 인덱스 ("" 이면 alias 없음)
        required_index: `{alias}-{version}` 형식의 요구 인덱스
    """

    update_required: bool
    current_index: str
    required_index: str

    @property
    def is_bootstrap(self) -> bool:
        """기존 인덱스가 없어 read-only/복사 단계가 필요 없는 경우."""
        return not self.current_index


def indices_by_alias(es: Elasticsearch, alias_name: str) -> list[str]:
    """alias가 가리키는 인덱스 목록 (정렬됨).

    전체 alias 메타데이터를 읽으므로 alias가 없어도 404가 발생하지 않습니다.
    """
    resp = es.indices.get_alias()
    return sorted(
        index
        for index, meta in resp.items()
        if alias_name in (meta.get("aliases") or {})
    )


def _parse_version(value: str) -> semver.Version | None:
    try:
        return semver.Version.parse(value, optional_minor_and_patch=True)
    except ValueError:
        return None


def same_version(index_name: str, required_index: str, alias_name: str) -> bool:
    """두 인덱스명의 버전 접미사를 semver로 비교.

    `concepts-1.0` 과 `concepts-1.0.0` 은 같은 버전으로 봅니다.
    build metadata(`+build`)는 비교에서 무시합니다.
    semver로 해석되지 않는 접미사는 문자열로 비교합니다.
    """
    if index_name == required_index:
        return True

    prefix = f"{alias_name}-"
    if not (index_name.startswith(prefix) and required_index.startswith(prefix)):
        return False

    current = _parse_version(index_name[len(prefix):])
    required = _parse_version(required_index[len(prefix):])
    if current is None or required is None:
        return False

    order = current.compare(required)
    if order > 0:
        logger.warning(f"index {index_name} is newer than required {required_index}")
    return order == 0


def resolve_alias(es: Elasticsearch, alias_name: str, index_version: str) -> AliasResolution:
    """alias의 현재 인덱스를 요구 버전과 비교.

    Raises:
        InconsistentAliasError: alias가 두 개 이상의 인덱스를 가리킬 때.
    """
    aliased_indices = indices_by_alias(es, alias_name)
    required_index = f"{alias_name}-{index_version}"

    if not aliased_indices:
        logger.info(f"no current index alias {alias_name}")
        return AliasResolution(update_required=True, current_index="", required_index=required_index)

    if len(aliased_indices) > 1:
        raise InconsistentAliasError(alias_name, aliased_indices)

    current_index = aliased_indices[0]
    logger.info(f"current index alias {alias_name} -> {current_index}")
    logger.info(f"comparing to required index {required_index}")

    return AliasResolution(
        update_required=not same_version(current_index, required_index, alias_name),
        current_index=current_index,
        required_index=required_index,
    )


def alias_actions(
    alias_name: str,
    alias_filter: dict[str, Any] | None,
    old_index: str,
    new_index: str,
) -> list[dict[str, Any]]:
    """`_aliases` 요청 action 목록 생성."""
    actions: list[dict[str, Any]] = []
    if old_index:
        actions.append({"remove": {"index": old_index, "alias": alias_name}})

    add: dict[str, Any] = {"index": new_index, "alias": alias_name}
    if alias_filter:
        add["filter"] = alias_filter
    actions.append({"add": add})
    return actions


def update_alias(
    es: Elasticsearch,
    alias_name: str,
    alias_filter: dict[str, Any] | None,
    old_index: str,
    new_index: str,
) -> None:
    """alias를 old_index에서 new_index로 원자적으로 전환.

    old_index가 빈 문자열이면 (bootstrap) add만 수행합니다.
    """
    logger.info(
        f"updating index alias {alias_name}: {old_index or '-'} -> {new_index} "
        f"(filter={alias_filter})"
    )
    es.indices.update_aliases(actions=alias_actions(alias_name, alias_filter, old_index, new_index))


def repoint_alias(es: Elasticsearch, alias_name: str, new_index: str) -> None:
    """필터 없는 보조 alias를 new_index로 전환.

    보조 alias는 이전 인덱스를 추적하지 않으므로 현재 가리키는 인덱스를
    조회해 모두 제거하고 new_index에 추가합니다.
    """
    actions: list[dict[str, Any]] = [
        {"remove": {"index": index, "alias": alias_name}}
        for index in indices_by_alias(es, alias_name)
        if index != new_index
    ]
    actions.append({"add": {"index": new_index, "alias": alias_name}})

    logger.info(f"updating unfiltered alias {alias_name} -> {new_index}")
    es.indices.update_aliases(actions=actions)
