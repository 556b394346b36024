"""ES 연결 감시자.

연결될 때까지 클라이언트 생성을 재시도하고, 연결된 핸들을 채널(queue)에
전달합니다. 한 번 연결되면 클라이언트 자체가 재연결을 처리하므로 종료합니다.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable

from elasticsearch import Elasticsearch

from reindexer.client import check_connection, create_es_client
from reindexer.config import ReindexerConfig

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ReindexerConfig], Elasticsearch]


class ConnectionSupervisor:
    """연결 성공 시 클라이언트 핸들을 채널에 전달.

    채널 종료는 None sentinel로 표시합니다.
    """

    def __init__(
        self,
        cfg: ReindexerConfig,
        channel: queue.Queue[Elasticsearch | None] | None = None,
        client_factory: ClientFactory = create_es_client,
    ):
        self.cfg = cfg
        self.channel: queue.Queue[Elasticsearch | None] = channel or queue.Queue()
        self.client_factory = client_factory
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _connect(self) -> Elasticsearch | None:
        try:
            es = self.client_factory(self.cfg)
        except Exception as e:
            logger.error(f"could not create ElasticSearch client: {e}")
            return None

        if not check_connection(es):
            logger.error(f"could not connect to ElasticSearch at {self.cfg.es_url}")
            es.close()
            return None
        return es

    def run(self) -> None:
        """연결될 때까지 재시도 후 채널을 닫음."""
        try:
            while not self._stop.is_set():
                es = self._connect()
                if es is not None:
                    logger.info("connected to ElasticSearch")
                    self.channel.put(es)
                    return
                self._stop.wait(self.cfg.connect_retry_interval_s)
        finally:
            self.channel.put(None)

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="es-connection-supervisor", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()
