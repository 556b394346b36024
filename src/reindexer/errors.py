"""마이그레이션 오류 정의.

전송 계층 오류(연결 실패, HTTP 오류)는 elasticsearch 라이브러리의
ApiError / TransportError를 그대로 전파합니다.
"""

from __future__ import annotations


class ReindexerError(Exception):
    """Reindexer 기본 예외."""


class NoIndexVersionError(ReindexerError):
    """요구 인덱스 버전이 설정되지 않음."""

    def __init__(self) -> None:
        super().__init__("No index version has been specified")


class NoElasticClientError(ReindexerError):
    """사용 가능한 ES 클라이언트가 없음."""

    def __init__(self) -> None:
        super().__init__("No ElasticSearch client available")


class ClusterUnhealthyError(ReindexerError):
    """클러스터 상태가 green이 아님."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Cluster is {status}")


class InconsistentAliasError(ReindexerError):
    """alias가 두 개 이상의 인덱스를 가리킴. 운영자 개입 필요."""

    def __init__(self, alias: str, indices: list[str]):
        self.alias = alias
        self.indices = list(indices)
        super().__init__(f"alias {alias} points to multiple indices: {self.indices}")


class IndexAlreadyExistsError(ReindexerError):
    """생성하려는 인덱스가 이미 존재함 (이전 마이그레이션이 중단된 흔적)."""

    def __init__(self, index: str):
        self.index = index
        super().__init__(f"index [{index}] already exists")


class ReadOnlyStalledError(ReindexerError):
    """read-only 설정이 재시도 한도 내에 반영되지 않음."""

    def __init__(self, index: str):
        self.index = index
        super().__init__(f"setting index read-only {index}: process may have stalled")


class ReindexStalledError(ReindexerError):
    """reindex 문서 수가 관찰 윈도우 동안 늘지 않음."""

    def __init__(self, index: str, count: int):
        self.index = index
        self.count = count
        super().__init__(f"reindexing into {index}: process may have stalled at {count} documents")


class MigrationCancelledError(ReindexerError):
    """취소 토큰에 의해 폴링이 중단됨."""

    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(f"migration cancelled during {phase}")
