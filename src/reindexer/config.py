"""Reindexer 설정 관리.

환경변수로 설정을 관리합니다. 시작 시 한 번만 읽고 재로딩하지 않습니다.
CLI 플래그가 주어지면 `dataclasses.replace`로 덮어씁니다 (reindexer.cli 참고).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PANIC_GUIDE_URL = "https://runbooks.in.ft.com/concepts-reindexer"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_optional(name: str) -> str | None:
    value = os.getenv(name)
    return value if value else None


def _env_max_errors() -> int | None:
    """MAX_POLL_ERRORS가 0 이하이면 무제한 폴링 (None)."""
    value = int(os.getenv("MAX_POLL_ERRORS", "3"))
    return value if value > 0 else None


@dataclass(frozen=True)
class ReindexerConfig:
    """Elasticsearch 연결 및 마이그레이션 설정.

    Attributes:
        es_url: Elasticsearch 서버 URL (예: http://localhost:9200)
        es_username: HTTP Basic Auth 사용자명 (선택)
        es_password: HTTP Basic Auth 비밀번호 (선택)
        auth: 인증 방식. "aws"면 SigV4 서명, "none"이면 Basic Auth 또는 인증 없음
        es_region: AWS 서명에 사용할 리전
        verify_certs: SSL 인증서 검증 여부
        request_timeout_s: 요청 타임아웃 (초)
        trace_logging: ES 요청/응답 DEBUG 로깅 여부
        alias_name: 클라이언트가 사용하는 인덱스 alias
        unfiltered_alias_name: 필터 없이 같은 인덱스를 가리키는 두 번째 alias (빈 값이면 사용 안 함)
        index_version: 요구되는 매핑/인덱스 버전 (semver)
        mapping_file: 새 인덱스 매핑 JSON 파일 경로
        alias_filter_file: alias에 적용할 필터 쿼리 JSON 파일 경로 (선택)
        poll_interval_s: read-only 확인 및 reindex 진행 폴링 간격 (초)
        max_poll_errors: 폴링 오류/정체 허용 횟수. None이면 무제한
        connect_retry_interval_s: 연결 실패 시 재시도 간격 (초)
        port: 헬스체크 HTTP 포트
        system_code: 헬스체크 응답의 시스템 코드
        panic_guide_url: 헬스체크 응답의 런북 URL
    """

    # Connection
    es_url: str = field(
        default_factory=lambda: os.getenv("ELASTICSEARCH_ENDPOINT", "http://localhost:9200")
    )
    es_username: str | None = field(default_factory=lambda: _env_optional("ES_USERNAME"))
    es_password: str | None = field(default_factory=lambda: _env_optional("ES_PASSWORD"))
    verify_certs: bool = field(default_factory=lambda: _env_bool("ES_VERIFY_CERTS", "true"))
    request_timeout_s: int = field(
        default_factory=lambda: int(os.getenv("ES_REQUEST_TIMEOUT_S", "30"))
    )
    auth: str = field(default_factory=lambda: os.getenv("AUTH", "none").lower())
    es_region: str = field(default_factory=lambda: os.getenv("ELASTICSEARCH_REGION", "eu-west-1"))
    trace_logging: bool = field(default_factory=lambda: _env_bool("ELASTICSEARCH_TRACE", "false"))

    # Migration
    alias_name: str = field(
        default_factory=lambda: os.getenv("ELASTICSEARCH_INDEX_ALIAS", "concepts")
    )
    unfiltered_alias_name: str | None = field(
        default_factory=lambda: os.getenv("ALIAS_FOR_ALL_CONCEPTS", "all-concepts") or None
    )
    index_version: str = field(default_factory=lambda: os.getenv("INDEX_VERSION", ""))
    mapping_file: Path = field(
        default_factory=lambda: Path(os.getenv("MAPPING_FILE", "./mapping.json"))
    )
    alias_filter_file: Path | None = field(
        default_factory=lambda: (
            Path(os.environ["ALIAS_FILTER_FILE"]) if os.getenv("ALIAS_FILTER_FILE") else None
        )
    )

    # Polling
    poll_interval_s: float = field(default_factory=lambda: float(os.getenv("POLL_INTERVAL_S", "60")))
    max_poll_errors: int | None = field(default_factory=_env_max_errors)
    connect_retry_interval_s: float = field(
        default_factory=lambda: float(os.getenv("CONNECT_RETRY_INTERVAL_S", "60"))
    )

    # HTTP
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8080")))
    system_code: str = field(default_factory=lambda: os.getenv("SYSTEM_CODE", "NO-SYSTEM-CODE"))
    panic_guide_url: str = field(
        default_factory=lambda: os.getenv("PANIC_GUIDE_URL", DEFAULT_PANIC_GUIDE_URL)
    )

    @classmethod
    def from_env(cls) -> ReindexerConfig:
        """환경변수에서 설정 로드."""
        return cls()

    def required_index_name(self) -> str:
        """`{alias}-{version}` 형식의 대상 인덱스명."""
        return f"{self.alias_name}-{self.index_version}"

    def read_mapping(self) -> dict[str, Any]:
        """매핑 파일 로드. 내용은 해석하지 않고 인덱스 생성 body로 그대로 전달."""
        with self.mapping_file.open("r", encoding="utf-8") as f:
            return json.load(f)

    def read_alias_filter(self) -> dict[str, Any] | None:
        """alias 필터 쿼리 로드. 파일이 지정되지 않았으면 None."""
        if self.alias_filter_file is None:
            return None
        with self.alias_filter_file.open("r", encoding="utf-8") as f:
            return json.load(f)
