"""마이그레이션 서비스.

ES 클라이언트 핸들을 보관하고, 연결 감시자가 핸들을 전달할 때마다
마이그레이션을 한 번 실행합니다. 헬스체크는 보관된 핸들과 상태 레코드를 읽습니다.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass

from elasticsearch import Elasticsearch

from reindexer.config import ReindexerConfig
from reindexer.errors import ClusterUnhealthyError, NoElasticClientError
from reindexer.migrator import IndexMigrator, MigrationResult, check_cluster_health
from reindexer.status import MigrationStatus

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class CheckResult:
    """헬스체크 결과. ok가 False면 error에 원인."""

    output: str
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class HealthCheck:
    """헬스체크 정의 (이름, 영향도, 런북 등)."""

    id: str
    name: str
    business_impact: str
    technical_summary: str
    severity: int


CONNECTIVITY_CHECK = HealthCheck(
    id="connectivity",
    name="Check connectivity to the Elasticsearch cluster",
    business_impact="Could not connect to Elasticsearch",
    technical_summary=(
        "Connection to Elasticsearch cluster could not be created. "
        "Please check your credentials."
    ),
    severity=1,
)
CLUSTER_HEALTH_CHECK = HealthCheck(
    id="cluster-health",
    name="Check Elasticsearch cluster health",
    business_impact="Full or partial degradation in serving requests from Elasticsearch",
    technical_summary="Elasticsearch cluster is not healthy.",
    severity=1,
)
MAPPINGS_CHECK = HealthCheck(
    id="mappings",
    name="Check Elasticsearch mappings version",
    business_impact="Search results may not be as expected for the data set.",
    technical_summary="Elasticsearch mappings may not have been migrated.",
    severity=2,
)


class MigrationService:
    """클라이언트 핸들 보관 + 마이그레이션 실행 + 헬스체크."""

    def __init__(self, cfg: ReindexerConfig, status: MigrationStatus | None = None):
        self.cfg = cfg
        self.status = status or MigrationStatus()
        self.cancel = threading.Event()
        self._client_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._es: Elasticsearch | None = None

    # =========================================================================
    # Client handle
    # =========================================================================

    def set_client(self, es: Elasticsearch | None) -> None:
        """핸들을 통째로 교체."""
        with self._client_lock:
            self._es = es
        logger.info("injected ElasticSearch connection")

    @property
    def client(self) -> Elasticsearch | None:
        with self._client_lock:
            return self._es

    # =========================================================================
    # Migration
    # =========================================================================

    def migrate(self) -> MigrationResult:
        """현재 핸들로 마이그레이션 한 번 실행. 동시에 하나만 실행."""
        with self._run_lock:
            return IndexMigrator(self.client, self.cfg, status=self.status, cancel=self.cancel).run()

    def run(self, channel: queue.Queue[Elasticsearch | None]) -> None:
        """채널에서 핸들을 받을 때마다 마이그레이션 실행. None을 받으면 종료."""
        while True:
            es = channel.get()
            if es is None:
                logger.info("client channel closed")
                return
            self.set_client(es)
            result = self.migrate()
            if result.ok:
                logger.info(f"migration attempt finished: {result.phase.value}")

    def start(self, channel: queue.Queue[Elasticsearch | None]) -> threading.Thread:
        thread = threading.Thread(
            target=self.run, args=(channel,), name="index-migration", daemon=True
        )
        thread.start()
        return thread

    def stop(self) -> None:
        """진행 중인 폴링을 취소."""
        self.cancel.set()

    # =========================================================================
    # Health checks
    # =========================================================================

    def _cluster_status(self) -> str:
        es = self.client
        if es is None:
            raise NoElasticClientError()
        return str(es.cluster.health()["status"])

    def connectivity_check(self) -> CheckResult:
        if self.client is None:
            return CheckResult(
                "",
                ConnectionError(
                    "Could not connect to elasticsearch, please check the application "
                    "parameters/env variables, and restart the service."
                ),
            )
        try:
            self._cluster_status()
        except Exception as e:
            return CheckResult("Could not connect to elasticsearch", e)
        return CheckResult("Successfully connected to the cluster")

    def cluster_health_check(self) -> CheckResult:
        es = self.client
        if es is None:
            return CheckResult(
                "Couldn't check the cluster's health.",
                ConnectionError("Couldn't establish connectivity."),
            )
        try:
            check_cluster_health(es)
        except ClusterUnhealthyError as e:
            return CheckResult(str(e), e)
        except Exception as e:
            return CheckResult("Cluster is not healthy", e)
        return CheckResult("Cluster is healthy")

    def mappings_check(self) -> CheckResult:
        snapshot = self.status.snapshot()
        version = self.cfg.index_version

        if snapshot.migration_error is not None:
            return CheckResult(
                "Elasticsearch mappings were not migrated successfully", snapshot.migration_error
            )

        if not snapshot.migration_check:
            msg = (
                f"Elasticsearch mappings migration to version {version} "
                f"is in progress ({snapshot.progress})"
            )
            return CheckResult(msg, RuntimeError(msg))

        return CheckResult(f"Elasticsearch mappings are at version {version}")

    def checks(self, timeout_s: float = HEALTH_CHECK_TIMEOUT_S) -> list[tuple[HealthCheck, CheckResult]]:
        """세 헬스체크를 병렬 실행. timeout_s 안에 끝나지 않은 체크는 실패로 보고."""
        runs = [
            (CONNECTIVITY_CHECK, self.connectivity_check),
            (CLUSTER_HEALTH_CHECK, self.cluster_health_check),
            (MAPPINGS_CHECK, self.mappings_check),
        ]
        executor = ThreadPoolExecutor(max_workers=len(runs), thread_name_prefix="health-check")
        try:
            futures = [(check, executor.submit(fn)) for check, fn in runs]
            deadline = time.monotonic() + timeout_s
            results = []
            for check, future in futures:
                try:
                    result = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FuturesTimeoutError:
                    logger.error(f"health check {check.id} timed out after {timeout_s}s")
                    result = CheckResult(
                        f"Timed out after {timeout_s} seconds",
                        TimeoutError(f"health check {check.id} timed out after {timeout_s}s"),
                    )
                results.append((check, result))
            return results
        finally:
            executor.shutdown(wait=False)

    def good_to_go(self) -> bool:
        return self.cluster_health_check().ok
