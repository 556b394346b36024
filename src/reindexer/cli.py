"""Elasticsearch reindexer CLI.

Usage:
    es-reindexer serve      # 연결 감시 + 마이그레이션 + 헬스체크 HTTP 서버 (기본)
    es-reindexer migrate    # 한 번 마이그레이션 후 종료
    es-reindexer status     # alias / 인덱스 상태 출력

모든 플래그는 환경변수 기본값을 덮어씁니다 (.env.example 참고).
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Any

import uvicorn

from reindexer.aliases import indices_by_alias
from reindexer.api import create_app
from reindexer.client import check_connection, create_es_client
from reindexer.config import ReindexerConfig
from reindexer.migrator import migrate_index
from reindexer.reindex import count_documents
from reindexer.service import MigrationService
from reindexer.supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)

# 플래그 이름 -> (설정 필드, 변환 함수)
_FLAG_FIELDS: dict[str, tuple[str, Any]] = {
    "port": ("port", int),
    "elasticsearch_endpoint": ("es_url", str),
    "auth": ("auth", str.lower),
    "elasticsearch_region": ("es_region", str),
    "elasticsearch_index_alias": ("alias_name", str),
    "alias_for_all_concepts": ("unfiltered_alias_name", lambda v: v or None),
    "mapping_version": ("index_version", str),
    "mapping_file": ("mapping_file", Path),
    "alias_filter_file": ("alias_filter_file", Path),
    "poll_interval": ("poll_interval_s", float),
    "max_poll_errors": ("max_poll_errors", int),
    "connect_retry_interval": ("connect_retry_interval_s", float),
    "system_code": ("system_code", str),
    "panic_guide_url": ("panic_guide_url", str),
}


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_config(args: argparse.Namespace) -> ReindexerConfig:
    """환경변수 설정 위에 CLI 플래그 적용."""
    overrides: dict[str, Any] = {}
    for flag, (field_name, convert) in _FLAG_FIELDS.items():
        value = getattr(args, flag, None)
        if value is None:
            continue
        if field_name == "max_poll_errors":
            overrides[field_name] = value if value > 0 else None
        else:
            overrides[field_name] = convert(value)
    if getattr(args, "elasticsearch_trace", False):
        overrides["trace_logging"] = True
    return dataclasses.replace(ReindexerConfig.from_env(), **overrides)


def log_startup_config(cfg: ReindexerConfig) -> None:
    logger.info("ElasticSearch reindexer uses the following configuration:")
    logger.info(f"port: {cfg.port}")
    logger.info(f"elasticsearch-endpoint: {cfg.es_url}")
    logger.info(f"elasticsearch-auth: {cfg.auth}")
    logger.info(f"elasticsearch-region: {cfg.es_region}")
    logger.info(f"elasticsearch-index-alias: {cfg.alias_name}")
    logger.info(f"alias-for-all-concepts: {cfg.unfiltered_alias_name}")
    logger.info(f"mapping-version: {cfg.index_version}")
    logger.info(f"mapping-file: {cfg.mapping_file}")
    logger.info(f"alias-filter-file: {cfg.alias_filter_file}")


def cmd_serve(cfg: ReindexerConfig) -> int:
    """연결 감시자와 마이그레이션 루프를 띄우고 HTTP 서버 실행."""
    service = MigrationService(cfg)
    supervisor = ConnectionSupervisor(cfg)
    service.start(supervisor.channel)
    supervisor.start()

    logger.info(f"ElasticSearch reindexer listening on port {cfg.port}...")
    try:
        uvicorn.run(create_app(service), host="0.0.0.0", port=cfg.port, log_config=None)
    finally:
        supervisor.stop()
        service.stop()
    return 0


def cmd_migrate(cfg: ReindexerConfig) -> int:
    """마이그레이션 한 번 실행."""
    es = create_es_client(cfg)
    if not check_connection(es):
        logger.error(f"could not connect to ElasticSearch at {cfg.es_url}")
        return 1

    result = migrate_index(es, cfg)
    if not result.ok:
        return 1
    print(f"{result.phase.value}: {result.current_index or '-'} -> {result.new_index}")
    return 0


def cmd_status(cfg: ReindexerConfig) -> int:
    """alias가 가리키는 인덱스와 문서 수 출력."""
    es = create_es_client(cfg)
    if not check_connection(es):
        logger.error(f"could not connect to ElasticSearch at {cfg.es_url}")
        return 1

    print(f"\nCluster: {es.cluster.health()['status']}")
    print(f"Required index: {cfg.required_index_name()}")
    for alias in filter(None, [cfg.alias_name, cfg.unfiltered_alias_name]):
        indices = indices_by_alias(es, alias)
        print(f"\n{alias}: {', '.join(indices) or '(none)'}")
        for index in indices:
            print(f"   {index}: {count_documents(es, index):,} documents")
    print()
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI 진입점."""
    parser = argparse.ArgumentParser(
        prog="es-reindexer",
        description="ElasticSearch reindexer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
환경변수:
  ELASTICSEARCH_ENDPOINT     Elasticsearch URL (기본: http://localhost:9200)
  AUTH                       인증 방식 aws | none (기본: none)
  ELASTICSEARCH_REGION       AWS 리전 (기본: eu-west-1)
  ELASTICSEARCH_INDEX_ALIAS  인덱스 alias (기본: concepts)
  ALIAS_FOR_ALL_CONCEPTS     필터 없는 보조 alias (기본: all-concepts)
  INDEX_VERSION              요구 매핑 버전 (필수)
  MAPPING_FILE               매핑 파일 (기본: ./mapping.json)
  ALIAS_FILTER_FILE          alias 필터 쿼리 파일
  POLL_INTERVAL_S            폴링 간격 초 (기본: 60)
  MAX_POLL_ERRORS            폴링 오류 허용 횟수, 0이면 무제한 (기본: 3)
""",
    )
    parser.add_argument(
        "command", nargs="?", default="serve", choices=["serve", "migrate", "status"]
    )
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--elasticsearch-endpoint", help="ES endpoint")
    parser.add_argument(
        "--auth", choices=["aws", "none"], help="Authentication method for ES cluster (aws or none)"
    )
    parser.add_argument("--elasticsearch-region", help="ES region")
    parser.add_argument("--elasticsearch-index-alias", help="Elasticsearch index alias")
    parser.add_argument(
        "--alias-for-all-concepts", help="The name of the index alias which won't have any filters"
    )
    parser.add_argument("--mapping-version", help="Mapping file / index version")
    parser.add_argument("--mapping-file", help="Mapping file")
    parser.add_argument("--alias-filter-file", help="An optional filter query to apply to the alias")
    parser.add_argument("--poll-interval", type=float, help="Polling interval in seconds")
    parser.add_argument(
        "--max-poll-errors", type=int, help="Polling errors tolerated, 0 for unbounded"
    )
    parser.add_argument(
        "--connect-retry-interval", type=float, help="Seconds between connection attempts"
    )
    parser.add_argument("--system-code", help="System code")
    parser.add_argument("--panic-guide-url", help="Panic Guide URL")
    parser.add_argument(
        "--elasticsearch-trace",
        action="store_true",
        help="Whether to log ElasticSearch HTTP requests and responses",
    )
    parser.add_argument("--log-level", help="Log level (기본: LOG_LEVEL 또는 INFO)")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    cfg = build_config(args)
    log_startup_config(cfg)

    if args.command == "migrate":
        return cmd_migrate(cfg)
    elif args.command == "status":
        return cmd_status(cfg)
    return cmd_serve(cfg)


if __name__ == "__main__":
    sys.exit(main())
