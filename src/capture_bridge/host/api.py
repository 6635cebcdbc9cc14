"""FastAPI app for the local capture host.

- /health: liveness check
- /v1/initialize, /v1/capture, /v1/pick, /v1/state: scripting side
- /v1/pending, /v1/permissions/result, /v1/actions/result: device side
- /v1/messages: drain listener messages
"""

from __future__ import annotations

import threading
from typing import Optional

from fastapi import FastAPI, HTTPException

from capture_bridge.common.models import (
    ActionOutcome,
    InitializeRequest,
    PermissionResult,
    Request,
    RequestAccepted,
)
from capture_bridge.core.app import App
from capture_bridge.core.errors import BrokerBusyError, BrokerNotInitializedError
from capture_bridge.host.bridge import RemoteBridge


def create_app(core: Optional[App] = None) -> FastAPI:
    core = core or App()
    bridge = RemoteBridge(core.config)
    broker = core.create_broker(bridge.permissions, bridge.launcher, bridge.sink, initialize=False)
    # Sync endpoints run in a worker pool; the broker expects one caller at a time.
    lock = threading.Lock()

    app = FastAPI(title="CaptureBridge Host", version="0.1.0")
    app.state.core = core
    app.state.bridge = bridge

    def _start(start) -> RequestAccepted:
        with lock:
            try:
                request: Request = start()
            except BrokerNotInitializedError as e:
                raise HTTPException(status_code=412, detail=str(e))
            except BrokerBusyError as e:
                raise HTTPException(status_code=409, detail=str(e))
            return RequestAccepted(token=request.token, capability=request.capability, state=request.state)

    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.post("/v1/initialize")
    def initialize(payload: InitializeRequest) -> dict:
        with lock:
            broker.initialize(payload.target, payload.method)
        return {"ok": True, "target": payload.target, "method": payload.method}

    @app.post("/v1/capture", status_code=202)
    def capture() -> RequestAccepted:
        return _start(broker.request_capture)

    @app.post("/v1/pick", status_code=202)
    def pick() -> RequestAccepted:
        return _start(broker.request_pick)

    @app.get("/v1/state")
    def state() -> dict:
        with lock:
            active = broker.active_request
            return {
                "state": broker.state.value,
                "initialized": broker.initialized,
                "active": active.model_dump(mode="json") if active else None,
            }

    @app.get("/v1/pending")
    def pending() -> dict:
        with lock:
            return {
                "prompts": [p.model_dump(mode="json") for p in bridge.permissions.pending()],
                "actions": [a.model_dump(mode="json") for a in bridge.launcher.pending()],
            }

    @app.post("/v1/permissions/result")
    def permission_result(payload: PermissionResult) -> dict:
        with lock:
            if not bridge.permissions.resolve(payload.token, payload.grants):
                raise HTTPException(status_code=404, detail=f"No pending prompt for token {payload.token}")
            return {"ok": True, "state": broker.state.value}

    @app.post("/v1/actions/result")
    def action_result(payload: ActionOutcome) -> dict:
        with lock:
            if not bridge.launcher.resolve(payload):
                raise HTTPException(status_code=404, detail=f"No pending action for token {payload.token}")
            return {"ok": True, "state": broker.state.value}

    @app.get("/v1/messages")
    def messages() -> dict:
        with lock:
            return {"messages": bridge.sink.drain()}

    return app
