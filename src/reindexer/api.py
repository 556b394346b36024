"""헬스체크 HTTP 엔드포인트.

- GET /__health      : 연결, 클러스터 상태, 매핑 마이그레이션 상태
- GET /__gtg         : 클러스터가 healthy이면 200, 아니면 503
- GET /__build-info  : 패키지 이름/버전
"""

from __future__ import annotations

import datetime
from importlib.metadata import PackageNotFoundError, version

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from reindexer.service import MigrationService

PACKAGE_NAME = "es-reindexer"


def _package_version() -> str:
    try:
        return version(PACKAGE_NAME)
    except PackageNotFoundError:
        return "unknown"


def create_app(service: MigrationService) -> FastAPI:
    """MigrationService를 읽는 FastAPI 앱 생성."""
    app = FastAPI(title="Elasticsearch reindexer", version=_package_version())

    @app.get("/__health")
    def health():
        """세 가지 헬스체크 결과."""
        checks = []
        for check, result in service.checks():
            checks.append(
                {
                    "id": check.id,
                    "name": check.name,
                    "ok": result.ok,
                    "severity": check.severity,
                    "businessImpact": check.business_impact,
                    "technicalSummary": check.technical_summary,
                    "panicGuide": service.cfg.panic_guide_url,
                    "checkOutput": result.output if result.ok else str(result.error),
                    "lastUpdated": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                }
            )
        return {
            "schemaVersion": 1,
            "systemCode": service.cfg.system_code,
            "name": "Elasticsearch Service Healthcheck",
            "description": "Checks for ES",
            "ok": all(c["ok"] for c in checks),
            "checks": checks,
        }

    @app.get("/__gtg")
    def good_to_go():
        if service.good_to_go():
            return PlainTextResponse("OK")
        return PlainTextResponse("Service Unavailable", status_code=503)

    @app.get("/__build-info")
    def build_info():
        return JSONResponse({"name": PACKAGE_NAME, "version": _package_version()})

    return app
