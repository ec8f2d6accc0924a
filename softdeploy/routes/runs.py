"""Routes for the persisted test run ledger."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from softdeploy.routes.dependencies import engine, runs
from softdeploy.services.run_service import RunNotFoundError
from softdeploy.services.validation import SuiteValidationError, validate_run_request

router = APIRouter(prefix="/api/runs", tags=["runs"])


class CreateRunRequest(BaseModel):
    testSuite: Optional[Dict[str, Any]] = None
    projectId: Optional[str] = None
    userId: Optional[str] = None


def _paginated(result: Dict[str, Any]) -> dict:
    return {"success": True, **result}


def _require_run(request: Request, run_id: str) -> Dict[str, Any]:
    run = runs(request).get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


@router.get("")
async def list_runs(
    request: Request,
    projectId: Optional[str] = None,
    userId: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
) -> dict:
    return _paginated(runs(request).list_runs(projectId, userId, status, limit, offset))


@router.post("", status_code=201)
async def create_run(data: CreateRunRequest, request: Request) -> dict:
    try:
        suite = validate_run_request(data.testSuite, data.projectId, data.userId)
    except SuiteValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    run = runs(request).create_run(suite, data.projectId, data.userId)
    await engine(request).start_execution(
        suite, execution_id=run["id"], project_id=data.projectId, user_id=data.userId
    )
    return {"success": True, "message": "Test run created successfully", "data": run}


@router.get("/project/{project_id}")
async def runs_by_project(
    project_id: str,
    request: Request,
    status: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
) -> dict:
    return _paginated(runs(request).list_runs(project_id=project_id, status=status, limit=limit, offset=offset))


@router.get("/user/{user_id}")
async def runs_by_user(
    user_id: str,
    request: Request,
    status: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
) -> dict:
    return _paginated(runs(request).list_runs(user_id=user_id, status=status, limit=limit, offset=offset))


@router.get("/{run_id}")
async def get_run(run_id: str, request: Request) -> dict:
    return {"success": True, "data": _require_run(request, run_id)}


@router.get("/{run_id}/status")
async def get_run_status(run_id: str, request: Request) -> dict:
    status = runs(request).get_run_status(run_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return {"success": True, "data": status}


@router.post("/{run_id}/stop")
async def stop_run(run_id: str, request: Request) -> dict:
    await engine(request).stop_execution(run_id)
    try:
        run = runs(request).stop_run(run_id)
    except RunNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"success": True, "message": "Test run stopped successfully", "data": run}


@router.get("/{run_id}/artifacts")
async def get_run_artifacts(run_id: str, request: Request) -> dict:
    run = _require_run(request, run_id)
    return {"success": True, "data": {"artifacts": run.get("artifacts"), "logs": run.get("logs", [])}}


@router.get("/{run_id}/logs")
async def get_run_logs(run_id: str, request: Request) -> dict:
    return {"success": True, "data": _require_run(request, run_id).get("logs", [])}
