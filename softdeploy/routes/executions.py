from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from softdeploy.routes.dependencies import engine
from softdeploy.services.validation import SuiteValidationError
from softdeploy.utils.ids import utc_now_iso

router = APIRouter(prefix="/api", tags=["executions"])


class ExecuteSuiteRequest(BaseModel):
    testSuite: Optional[Dict[str, Any]] = None


@router.post("/execute-test-suite")
async def execute_test_suite(data: ExecuteSuiteRequest, request: Request) -> dict:
    try:
        execution_id = await engine(request).start_execution(data.testSuite)
    except SuiteValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "success": True,
        "executionId": execution_id,
        "message": "Test suite execution started",
        "timestamp": utc_now_iso(),
    }


@router.get("/execution-status/{execution_id}")
async def execution_status(execution_id: str, request: Request) -> dict:
    status = engine(request).status(execution_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return status


@router.post("/stop-execution/{execution_id}")
async def stop_execution(execution_id: str, request: Request) -> dict:
    await engine(request).stop_execution(execution_id)
    return {"success": True, "message": "Execution stopped"}
