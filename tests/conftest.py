from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from reindexer.config import ReindexerConfig
from tests.fake_es import FakeElasticsearch

DATA_DIR = Path(__file__).parent / "data"

API_BASE_URL = "http://test.api.ft.com"
TEST_ALIAS = "test-index"
UNFILTERED_ALIAS = "aliasForAllConcepts"
OLD_VERSION = "0.0.1"
NEW_VERSION = "0.0.2"
OLD_INDEX = f"{TEST_ALIAS}-{OLD_VERSION}"
NEW_INDEX = f"{TEST_ALIAS}-{NEW_VERSION}"
OLD_MAPPING_FILE = DATA_DIR / "old-mapping.json"
NEW_MAPPING_FILE = DATA_DIR / "new-mapping.json"
ALIAS_FILTER_FILE = DATA_DIR / "alias-filter.json"
SIZE = 100


def write_test_concepts(es, index_name: str, amount: int, es_type: str = "topics") -> None:
    """테스트 문서 작성. 짝수 번째 문서만 aliases 필드를 가짐."""
    ft_type = "http://www.ft.com/ontology/Topic"
    for i in range(amount):
        test_uuid = str(uuid.uuid4())
        aliases = [f"Test concept {es_type} {i}"] if i % 2 == 0 else []
        es.index(
            index=index_name,
            id=test_uuid,
            document={
                "id": test_uuid,
                "type": es_type,
                "apiUrl": f"{API_BASE_URL}/{es_type}/{test_uuid}",
                "prefLabel": f"Test concept {es_type} {test_uuid}",
                "types": [ft_type],
                "directType": ft_type,
                "aliases": aliases,
            },
        )


@pytest.fixture
def es() -> FakeElasticsearch:
    """기존 인덱스(OLD_INDEX)에 SIZE개 문서가 들어 있는 클러스터."""
    fake = FakeElasticsearch()
    fake.indices.create(index=OLD_INDEX, body={"mappings": {}})
    write_test_concepts(fake, OLD_INDEX, SIZE)
    return fake


def make_config(**overrides) -> ReindexerConfig:
    defaults = dict(
        es_url="http://localhost:9200",
        es_username=None,
        es_password=None,
        auth="none",
        es_region="eu-west-1",
        trace_logging=False,
        alias_name=TEST_ALIAS,
        unfiltered_alias_name=None,
        index_version=NEW_VERSION,
        mapping_file=NEW_MAPPING_FILE,
        alias_filter_file=None,
        poll_interval_s=0.0,
        max_poll_errors=3,
        connect_retry_interval_s=0.0,
    )
    defaults.update(overrides)
    return ReindexerConfig(**defaults)


@pytest.fixture
def config() -> ReindexerConfig:
    return make_config()
