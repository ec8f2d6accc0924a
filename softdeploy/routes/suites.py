"""Routes for managing stored test suites."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile

from softdeploy.routes.dependencies import engine, suites
from softdeploy.services.suite_store import SuiteNotFoundError
from softdeploy.services.validation import SuiteValidationError
from softdeploy.utils.excel_parser import parse_steps_excel
from softdeploy.utils.ids import utc_now_iso

router = APIRouter(prefix="/api/suites", tags=["suites"])


@router.get("")
async def list_suites(request: Request, projectId: Optional[str] = None) -> dict:
    return {"success": True, "data": suites(request).list_suites(projectId)}


@router.post("", status_code=201)
async def create_suite(payload: Dict[str, Any], request: Request) -> dict:
    try:
        suite = suites(request).create_suite(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"success": True, "message": "Test suite created successfully", "data": suite}


@router.post("/import", status_code=201)
async def import_suite(
    request: Request,
    file: UploadFile = File(...),
    name: str = Query(...),
    projectId: str = Query(...),
    baseUrl: str = Query(...),
    testType: str = Query("API"),
    toolId: Optional[str] = Query(None),
) -> dict:
    upload_dir: Path = request.app.state.upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)
    temp_path = upload_dir / Path(file.filename or "steps.xlsx").name
    temp_path.write_bytes(await file.read())
    try:
        steps = parse_steps_excel(temp_path)
    except (ValueError, OSError, KeyError) as exc:
        raise HTTPException(status_code=400, detail=f"Could not read Excel file: {exc}")
    finally:
        temp_path.unlink(missing_ok=True)

    suite = suites(request).create_suite(
        {
            "name": name,
            "projectId": projectId,
            "baseUrl": baseUrl,
            "testType": testType,
            "toolId": toolId,
            "steps": steps,
        }
    )
    return {"success": True, "message": f"Imported {len(steps)} steps", "data": suite}


@router.get("/{suite_id}")
async def get_suite(suite_id: str, request: Request) -> dict:
    try:
        return {"success": True, "data": suites(request).get_suite(suite_id)}
    except SuiteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.put("/{suite_id}")
async def update_suite(suite_id: str, payload: Dict[str, Any], request: Request) -> dict:
    try:
        suite = suites(request).update_suite(suite_id, payload)
    except SuiteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"success": True, "message": "Test suite updated successfully", "data": suite}


@router.delete("/{suite_id}")
async def delete_suite(suite_id: str, request: Request) -> dict:
    try:
        suite = suites(request).delete_suite(suite_id)
    except SuiteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"success": True, "message": "Test suite deleted successfully", "data": suite}


@router.post("/{suite_id}/execute")
async def execute_suite(suite_id: str, request: Request, userId: Optional[str] = None) -> dict:
    try:
        suite = suites(request).get_suite(suite_id)
        execution_id = await engine(request).start_execution(
            suite, project_id=suite.get("projectId"), user_id=userId
        )
    except SuiteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except SuiteValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "success": True,
        "executionId": execution_id,
        "message": "Test suite execution started",
        "timestamp": utc_now_iso(),
    }
