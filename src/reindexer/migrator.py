"""인덱스 매핑 마이그레이션 오케스트레이터.

단계는 항상 순서대로 실행되며 어느 단계든 실패하면 전체 시도를 중단합니다.
롤백은 하지 않습니다. 새 인덱스와 부분 복사본은 운영자 확인을 위해 남겨둡니다.

    NotStarted -> HealthGate -> AliasCheck -> (UpToDate | Provisioning)
        -> ReadOnlyLock -> Copying -> CutoverPending -> Done
    (모든 단계) -> Failed

Usage:
    >>> cfg = ReindexerConfig()
    >>> es = create_es_client(cfg)
    >>> result = migrate_index(es, cfg)
    >>> result.ok, result.new_index
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from elasticsearch import Elasticsearch

from reindexer.aliases import repoint_alias, resolve_alias, update_alias
from reindexer.config import ReindexerConfig
from reindexer.errors import ClusterUnhealthyError, NoElasticClientError, NoIndexVersionError
from reindexer.indices import create_index, set_read_only, wait_until_read_only
from reindexer.reindex import begin_copy, wait_for_completion
from reindexer.status import MigrationPhase, MigrationStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationResult:
    """마이그레이션 시도 결과."""

    phase: MigrationPhase
    current_index: str = ""
    new_index: str = ""
    documents: int = 0
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def updated(self) -> bool:
        """alias가 실제로 전환되었는지."""
        return self.ok and self.phase == MigrationPhase.DONE


def check_cluster_health(es: Elasticsearch) -> str:
    """클러스터 상태 조회. green이 아니면 ClusterUnhealthyError."""
    health = es.cluster.health()
    status = str(health["status"])
    if status != "green":
        raise ClusterUnhealthyError(status)
    return status


class IndexMigrator:
    """한 번의 마이그레이션 시도를 수행.

    클라이언트와 설정만으로 동작하므로 연결 감시자 없이 테스트할 수 있습니다.
    """

    def __init__(
        self,
        es: Elasticsearch | None,
        cfg: ReindexerConfig,
        status: MigrationStatus | None = None,
        cancel: threading.Event | None = None,
    ):
        self.es = es
        self.cfg = cfg
        self.status = status or MigrationStatus()
        self.cancel = cancel
        self._phase = MigrationPhase.NOT_STARTED

    def _enter(self, phase: MigrationPhase) -> None:
        self._phase = phase
        self.status.enter(phase)
        logger.info(f"migration phase: {phase.value}")

    def run(self) -> MigrationResult:
        """모든 단계를 실행하고 결과를 상태 레코드에 한 번 기록."""
        self.status.begin()
        try:
            result = self._migrate()
        except Exception as e:
            logger.error(f"index migration failed during {self._phase.value}: {e}")
            self.status.finish(e)
            return MigrationResult(phase=MigrationPhase.FAILED, error=e)

        self.status.finish(None)
        return result

    def _migrate(self) -> MigrationResult:
        cfg = self.cfg

        # HealthGate
        self._enter(MigrationPhase.HEALTH_GATE)
        if not cfg.index_version:
            raise NoIndexVersionError()
        if self.es is None:
            raise NoElasticClientError()
        es = self.es
        check_cluster_health(es)

        # AliasCheck
        self._enter(MigrationPhase.ALIAS_CHECK)
        resolution = resolve_alias(es, cfg.alias_name, cfg.index_version)
        if not resolution.update_required:
            logger.info(f"index {resolution.current_index} is up-to-date")
            self.status.set_progress(f"index is at version {cfg.index_version}")
            return MigrationResult(
                phase=MigrationPhase.UP_TO_DATE,
                current_index=resolution.current_index,
                new_index=resolution.current_index,
            )

        # Provisioning
        self._enter(MigrationPhase.PROVISIONING)
        mapping = cfg.read_mapping()
        alias_filter = cfg.read_alias_filter()
        create_index(es, resolution.required_index, mapping)

        documents = 0
        if not resolution.is_bootstrap:
            # ReadOnlyLock
            self._enter(MigrationPhase.READ_ONLY_LOCK)
            set_read_only(es, resolution.current_index)
            wait_until_read_only(
                es,
                resolution.current_index,
                cfg.max_poll_errors,
                cfg.poll_interval_s,
                cancel=self.cancel,
            )

            # Copying
            self._enter(MigrationPhase.COPYING)
            expected = begin_copy(es, resolution.current_index, resolution.required_index)
            documents = wait_for_completion(
                es,
                resolution.required_index,
                expected,
                cfg.max_poll_errors,
                cfg.poll_interval_s,
                on_progress=self.status.set_progress,
                cancel=self.cancel,
            )

        # CutoverPending
        self._enter(MigrationPhase.CUTOVER_PENDING)
        update_alias(
            es, cfg.alias_name, alias_filter, resolution.current_index, resolution.required_index
        )
        if cfg.unfiltered_alias_name:
            repoint_alias(es, cfg.unfiltered_alias_name, resolution.required_index)

        self._enter(MigrationPhase.DONE)
        logger.info(
            f"index migration completed: {resolution.current_index or '-'} -> "
            f"{resolution.required_index}"
        )
        return MigrationResult(
            phase=MigrationPhase.DONE,
            current_index=resolution.current_index,
            new_index=resolution.required_index,
            documents=documents,
        )


def migrate_index(
    es: Elasticsearch | None,
    cfg: ReindexerConfig,
    status: MigrationStatus | None = None,
    cancel: threading.Event | None = None,
) -> MigrationResult:
    """IndexMigrator 단축 함수."""
    return IndexMigrator(es, cfg, status=status, cancel=cancel).run()
