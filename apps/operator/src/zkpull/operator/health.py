"""健康检查 API

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，编排器运行中且 attempt journal 可访问时返回 200，否则 503。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from zkpull.core.store import AttemptJournal

from .orchestrator import Orchestrator

log = structlog.get_logger()


def create_health_app(
    orchestrator: Orchestrator,
    journal: AttemptJournal | None = None,
) -> FastAPI:
    """创建健康检查应用"""
    app = FastAPI(
        title="zkPull Operator",
        version="0.1.0",
        description="zkPull validation operator 健康检查",
    )
    app.state.orchestrator = orchestrator
    app.state.journal = journal

    @app.get("/health")
    async def health():
        """Liveness 检查 -- 永远返回 200"""
        return {"status": "ok"}

    @app.get("/ready")
    async def ready(request: Request):
        """Readiness 检查

        检查项：
        1. orchestrator: 发现与消费是否在运行
        2. sqlite: attempt journal 连通性（未启用时为 skipped）
        """
        orch: Orchestrator = request.app.state.orchestrator
        checks = {}
        all_ok = True

        if orch.running:
            checks["orchestrator"] = "ok"
        else:
            checks["orchestrator"] = "stopped"
            all_ok = False

        journal: AttemptJournal | None = request.app.state.journal
        if journal is None:
            checks["sqlite"] = "skipped"
        else:
            try:
                cursor = await journal.conn.execute("SELECT 1")
                await cursor.fetchone()
                checks["sqlite"] = "ok"
            except Exception as e:
                log.warning("health_check_error", check="sqlite", error=str(e))
                checks["sqlite"] = f"error: {e}"
                all_ok = False

        in_flight = orch.guard.snapshot()
        return JSONResponse(
            status_code=200 if all_ok else 503,
            content={
                "status": "ready" if all_ok else "not_ready",
                "running": orch.running,
                "in_flight": len(in_flight),
                "in_flight_tasks": sorted(in_flight),
                "checks": checks,
            },
        )

    return app
