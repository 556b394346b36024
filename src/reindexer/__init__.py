"""Elasticsearch alias 기반 무중단 인덱스 매핑 마이그레이션.

클라이언트는 alias로만 인덱스에 접근합니다. alias가 요구 버전의 인덱스
(`{alias}-{version}`)를 가리키지 않으면 새 인덱스를 만들고, 기존 인덱스를
read-only로 잠근 뒤 문서를 복사하고, alias를 원자적으로 전환합니다.

주요 컴포넌트:
    - resolve_alias / update_alias: alias 조회 및 전환
    - create_index / set_read_only / wait_until_read_only: 인덱스 생성 및 잠금
    - begin_copy / wait_for_completion: reindex 및 정체 감지
    - IndexMigrator / migrate_index: 단계별 오케스트레이터
    - MigrationService / ConnectionSupervisor: 연결 감시 및 헬스체크

Usage:
    >>> from reindexer import ReindexerConfig, create_es_client, migrate_index
    >>>
    >>> cfg = ReindexerConfig()
    >>> es = create_es_client(cfg)
    >>> result = migrate_index(es, cfg)
"""

from reindexer.aliases import AliasResolution, repoint_alias, resolve_alias, update_alias
from reindexer.client import check_connection, create_es_client
from reindexer.config import ReindexerConfig
from reindexer.errors import (
    ClusterUnhealthyError,
    InconsistentAliasError,
    IndexAlreadyExistsError,
    MigrationCancelledError,
    NoElasticClientError,
    NoIndexVersionError,
    ReadOnlyStalledError,
    ReindexerError,
    ReindexStalledError,
)
from reindexer.indices import create_index, set_read_only, wait_until_read_only
from reindexer.migrator import IndexMigrator, MigrationResult, migrate_index
from reindexer.reindex import begin_copy, check_completion, wait_for_completion
from reindexer.service import MigrationService
from reindexer.status import MigrationPhase, MigrationStatus
from reindexer.supervisor import ConnectionSupervisor

__all__ = [
    # Config
    "ReindexerConfig",
    # Client
    "create_es_client",
    "check_connection",
    # Alias
    "AliasResolution",
    "resolve_alias",
    "update_alias",
    "repoint_alias",
    # Index
    "create_index",
    "set_read_only",
    "wait_until_read_only",
    # Reindex
    "begin_copy",
    "check_completion",
    "wait_for_completion",
    # Orchestration
    "IndexMigrator",
    "MigrationResult",
    "migrate_index",
    "MigrationPhase",
    "MigrationStatus",
    "MigrationService",
    "ConnectionSupervisor",
    # Errors
    "ReindexerError",
    "NoIndexVersionError",
    "NoElasticClientError",
    "ClusterUnhealthyError",
    "InconsistentAliasError",
    "IndexAlreadyExistsError",
    "ReadOnlyStalledError",
    "ReindexStalledError",
    "MigrationCancelledError",
]
