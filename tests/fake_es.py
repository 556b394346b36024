"""테스트용 인메모리 Elasticsearch.

reindexer가 사용하는 API만 구현합니다. 오류는 elasticsearch 라이브러리의
실제 예외 타입으로 발생시킵니다.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import AuthorizationException, BadRequestError, NotFoundError


def api_error(cls: type, status: int, error_type: str, reason: str) -> Exception:
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    body = {
        "error": {
            "type": error_type,
            "reason": reason,
            "root_cause": [{"type": error_type, "reason": reason}],
        },
        "status": status,
    }
    return cls(message=error_type, meta=meta, body=body)


def index_not_found(index: str) -> Exception:
    return api_error(NotFoundError, 404, "index_not_found_exception", f"no such index [{index}]")


def matches(doc: dict[str, Any], query: dict[str, Any] | None) -> bool:
    """term / exists / match_all / bool.filter 만 지원."""
    if not query or "match_all" in query:
        return True
    if "term" in query:
        ((field_name, value),) = query["term"].items()
        if isinstance(value, dict):
            value = value["value"]
        actual = doc.get(field_name)
        return value in actual if isinstance(actual, list) else actual == value
    if "exists" in query:
        value = doc.get(query["exists"]["field"])
        return value not in (None, [], "")
    if "bool" in query:
        clauses = query["bool"].get("filter", []) + query["bool"].get("must", [])
        return all(matches(doc, c) for c in clauses)
    raise ValueError(f"unsupported query: {query}")


@dataclass
class FakeIndex:
    name: str
    body: dict[str, Any]
    docs: dict[str, dict[str, Any]] = field(default_factory=dict)
    settings: dict[str, str] = field(default_factory=dict)
    aliases: dict[str, dict[str, Any] | None] = field(default_factory=dict)

    @property
    def write_blocked(self) -> bool:
        return self.settings.get("index.blocks.write") == "true"


@dataclass
class ReindexTask:
    source: str
    dest: str
    pending: list[tuple[str, dict[str, Any]]]


class _Failures:
    """메서드별 예외 주입."""

    def __init__(self) -> None:
        self._queued: dict[str, list[Exception]] = {}

    def add(self, method: str, error: Exception, times: int = 1) -> None:
        self._queued.setdefault(method, []).extend([error] * times)

    def check(self, method: str) -> None:
        queued = self._queued.get(method)
        if queued:
            raise queued.pop(0)


class FakeIndices:
    def __init__(self, es: FakeElasticsearch):
        self._es = es

    def get_alias(self, **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("get_alias")
        return {
            name: {"aliases": {a: ({"filter": f} if f else {}) for a, f in idx.aliases.items()}}
            for name, idx in self._es.data.items()
        }

    def exists(self, index: str) -> bool:
        return index in self._es.data

    def create(self, index: str, body: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("create")
        if index in self._es.data:
            raise api_error(
                BadRequestError,
                400,
                "resource_already_exists_exception",
                f"index [{index}] already exists",
            )
        self._es.data[index] = FakeIndex(name=index, body=copy.deepcopy(body or {}))
        return {"acknowledged": True, "index": index}

    def put_settings(self, index: str, settings: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("put_settings")
        self._es.put_settings_calls += 1
        if index not in self._es.data:
            raise index_not_found(index)
        if self._es.ignore_settings_writes:
            return {"acknowledged": True}
        for key, value in settings.items():
            self._es.data[index].settings[key] = str(value).lower()
        return {"acknowledged": True}

    def get_settings(self, index: str, **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("get_settings")
        if index not in self._es.data:
            raise index_not_found(index)
        idx = self._es.data[index]
        nested: dict[str, Any] = {"number_of_shards": "1"}
        if self._es.settings_lag > 0:
            self._es.settings_lag -= 1
        elif idx.write_blocked:
            nested["blocks"] = {"write": "true"}
        return {index: {"settings": {"index": nested}}}

    def update_aliases(self, actions: list[dict[str, Any]], **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("update_aliases")
        self._es.alias_requests.append(copy.deepcopy(actions))

        # 모든 action을 먼저 검증한 뒤 한 번에 적용
        for action in actions:
            ((op, params),) = action.items()
            index = params["index"]
            if index not in self._es.data:
                raise index_not_found(index)
            if op == "remove" and params["alias"] not in self._es.data[index].aliases:
                raise api_error(
                    NotFoundError, 404, "aliases_not_found_exception", f"aliases [{params['alias']}] missing"
                )

        if self._es.before_alias_update is not None:
            self._es.before_alias_update()

        for action in actions:
            ((op, params),) = action.items()
            idx = self._es.data[params["index"]]
            if op == "remove":
                del idx.aliases[params["alias"]]
            else:
                idx.aliases[params["alias"]] = params.get("filter")
        return {"acknowledged": True}

    def refresh(self, index: str | None = None, **kwargs: Any) -> dict[str, Any]:
        return {"_shards": {"failed": 0}}


class FakeCluster:
    def __init__(self, es: FakeElasticsearch):
        self._es = es

    def health(self, **kwargs: Any) -> dict[str, Any]:
        self._es.failures.check("health")
        return {"cluster_name": "fake", "status": self._es.health_status}


class FakeElasticsearch:
    """인메모리 클러스터.

    Attributes:
        health_status: cluster.health()가 반환할 상태
        copy_batch: 대상 인덱스 count 호출마다 복사할 문서 수 (None이면 전부)
        stall_after: reindex가 이 문서 수에서 멈춤 (None이면 멈추지 않음)
        settings_lag: write block이 get_settings에 보이기까지 걸리는 호출 수
        ignore_settings_writes: put_settings를 무시 (read-only 정체 재현)
        before_alias_update: update_aliases 적용 직전 호출되는 훅
    """

    def __init__(self) -> None:
        self.data: dict[str, FakeIndex] = {}
        self.indices = FakeIndices(self)
        self.cluster = FakeCluster(self)
        self.failures = _Failures()
        self.tasks: list[ReindexTask] = []
        self.alias_requests: list[list[dict[str, Any]]] = []
        self.put_settings_calls = 0
        self.health_status = "green"
        self.copy_batch: int | None = None
        self.stall_after: int | None = None
        self.settings_lag = 0
        self.ignore_settings_writes = False
        self.before_alias_update: Callable[[], None] | None = None
        self.closed = False

    def ping(self, **kwargs: Any) -> bool:
        return True

    def close(self) -> None:
        self.closed = True

    def _resolve(self, name: str) -> list[tuple[FakeIndex, dict[str, Any] | None]]:
        if name in self.data:
            return [(self.data[name], None)]
        targets = [(idx, idx.aliases[name]) for idx in self.data.values() if name in idx.aliases]
        if not targets:
            raise index_not_found(name)
        return targets

    def index(self, index: str, id: str, document: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        targets = self._resolve(index)
        if len(targets) != 1:
            raise api_error(BadRequestError, 400, "illegal_argument_exception", "multiple indices")
        idx = targets[0][0]
        if idx.write_blocked:
            raise api_error(
                AuthorizationException,
                403,
                "cluster_block_exception",
                f"index [{idx.name}] blocked by: [FORBIDDEN/8/index write (api)];",
            )
        idx.docs[id] = copy.deepcopy(document)
        return {"_index": idx.name, "_id": id, "result": "created"}

    def _advance(self, dest: str) -> None:
        for task in self.tasks:
            if task.dest != dest or not task.pending:
                continue
            batch = len(task.pending) if self.copy_batch is None else self.copy_batch
            if self.stall_after is not None:
                batch = min(batch, max(0, self.stall_after - len(self.data[dest].docs)))
            for doc_id, doc in task.pending[:batch]:
                self.data[dest].docs[doc_id] = doc
            del task.pending[:batch]

    def count(self, index: str, **kwargs: Any) -> dict[str, Any]:
        self.failures.check("count")
        if index in self.data:
            self._advance(index)
        total = sum(
            sum(1 for doc in idx.docs.values() if matches(doc, flt))
            for idx, flt in self._resolve(index)
        )
        return {"count": total, "_shards": {"failed": 0}}

    def reindex(
        self,
        source: dict[str, Any],
        dest: dict[str, Any],
        wait_for_completion: bool = True,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self.failures.check("reindex")
        src, dst = source["index"], dest["index"]
        for name in (src, dst):
            if name not in self.data:
                raise index_not_found(name)
        pending = [(k, copy.deepcopy(v)) for k, v in self.data[src].docs.items()]
        self.tasks.append(ReindexTask(source=src, dest=dst, pending=pending))
        if wait_for_completion:
            self._advance(dst)
            return {"total": len(pending), "created": len(pending)}
        return {"task": f"fake-node:{len(self.tasks)}"}
