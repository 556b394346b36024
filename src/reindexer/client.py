"""Elasticsearch 클라이언트 팩토리."""

from __future__ import annotations

import logging

import boto3
from elasticsearch import Elasticsearch
from requests_aws4auth import AWS4Auth

from reindexer.config import ReindexerConfig

logger = logging.getLogger(__name__)

AWS_AUTH = "aws"
AWS_SERVICE = "es"


def configure_trace_logging(enabled: bool) -> None:
    """ES 요청/응답 로깅. 꺼져 있으면 로그 레벨을 건드리지 않음."""
    if not enabled:
        return
    for name in ("elasticsearch", "elastic_transport"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def aws_auth(region: str) -> AWS4Auth:
    """기본 AWS 자격 증명 체인으로 SigV4 서명 객체 생성.

    Raises:
        ValueError: 자격 증명을 찾지 못한 경우.
    """
    credentials = boto3.Session().get_credentials()
    if credentials is None:
        raise ValueError("AWS 자격 증명을 찾을 수 없습니다.")
    return AWS4Auth(region=region, service=AWS_SERVICE, refreshable_credentials=credentials)


def create_es_client(cfg: ReindexerConfig | None = None) -> Elasticsearch:
    """Elasticsearch 클라이언트 생성.

    Args:
        cfg: Reindexer 설정. None이면 환경변수 기본 설정 사용.

    Returns:
        Elasticsearch 클라이언트 인스턴스.

    Raises:
        ValueError: ES URL이 설정되지 않았거나 AWS 자격 증명이 없는 경우.
    """
    if cfg is None:
        cfg = ReindexerConfig()

    if not cfg.es_url:
        raise ValueError("ELASTICSEARCH_ENDPOINT 환경변수를 설정하세요.")

    configure_trace_logging(cfg.trace_logging)

    # AWS SigV4 서명 (requests 노드 필요)
    if cfg.auth == AWS_AUTH:
        return Elasticsearch(
            hosts=[cfg.es_url],
            http_auth=aws_auth(cfg.es_region),
            node_class="requests",
            verify_certs=cfg.verify_certs,
            request_timeout=cfg.request_timeout_s,
        )

    # Basic Auth 사용
    if cfg.es_username and cfg.es_password:
        return Elasticsearch(
            hosts=[cfg.es_url],
            basic_auth=(cfg.es_username, cfg.es_password),
            verify_certs=cfg.verify_certs,
            request_timeout=cfg.request_timeout_s,
        )

    # No Auth (로컬 개발용)
    return Elasticsearch(
        hosts=[cfg.es_url],
        verify_certs=cfg.verify_certs,
        request_timeout=cfg.request_timeout_s,
    )


def check_connection(es: Elasticsearch) -> bool:
    """ES 연결 상태 확인.

    Returns:
        연결 성공 여부.
    """
    try:
        return bool(es.ping())
    except Exception as e:
        logger.debug(f"ping failed: {e}")
        return False
