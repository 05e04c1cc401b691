from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.requests import Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from filevault.FileVault import FailureKind, OperationResult

# HTTP status for each failure kind
FAILURE_STATUS = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.ACCESS_DENIED: 403,
    FailureKind.VALIDATION_ERROR: 400,
    FailureKind.GENERIC_FAILURE: 500,
}


def raise_for_failure(result: OperationResult):
    """Translate a failed OperationResult into an HTTPException."""
    if result.success:
        return
    status = FAILURE_STATUS.get(result.failure, 500)
    raise HTTPException(status_code=status, detail=result.error)


def create_router(vault) -> APIRouter:
    router = APIRouter()

    @router.get("/api/files/search")
    async def api_search_files(
        query: str = "",
        min_size: Optional[int] = Query(None, alias="minSize"),
        max_size: Optional[int] = Query(None, alias="maxSize"),
        page: Optional[int] = None,
        page_size: Optional[int] = Query(None, alias="pageSize"),
    ):
        """Search the whole tree by name; size bounds keep only files."""
        result = await run_in_threadpool(
            vault.search, query, min_size, max_size, page, page_size
        )
        raise_for_failure(result)
        return {
            "files": [f.to_dict() for f in result.data["files"]],
            "total": result.data["total"],
        }

    @router.get("/api/files/types")
    async def api_allowed_types():
        """Configured upload allow-list (null = everything allowed)."""
        return {"allowedExtensions": vault.allowed_types()}

    @router.get("/api/files/download/{path:path}")
    async def api_download_file(path: str):
        """Stream a file as an attachment."""
        result = await run_in_threadpool(vault.get_file, path)
        raise_for_failure(result)
        entry = result.data
        return FileResponse(
            entry.absolute_path,
            media_type="application/octet-stream",
            filename=entry.name,
        )

    @router.get("/api/files/info/{path:path}")
    async def api_file_info(path: str):
        """Get file information."""
        result = await run_in_threadpool(vault.get_file, path)
        raise_for_failure(result)
        return result.data.to_dict()

    @router.post("/api/files/upload")
    @router.post("/api/files/upload/{path:path}")
    async def api_upload_files(request: Request, path: str = ""):
        """Save every file part of a multipart form into the target directory."""
        form = await request.form()
        try:
            uploads = [v for _, v in form.multi_items() if isinstance(v, UploadFile)]
            if not uploads:
                raise HTTPException(status_code=400, detail="No files were uploaded.")

            outcomes = await run_in_threadpool(
                vault.save_many,
                [(u.filename, u.file) for u in uploads],
                path or None,
            )
        finally:
            await form.close()

        denied = [o for o in outcomes if o.failure == FailureKind.ACCESS_DENIED]
        if denied:
            raise HTTPException(status_code=403, detail=denied[0].error)

        saved = sum(1 for o in outcomes if o.success)
        body = {
            "message": f"Uploaded {saved} of {len(outcomes)} files.",
            "files": [o.to_dict() for o in outcomes],
        }
        return JSONResponse(status_code=200 if saved else 400, content=body)

    @router.get("/api/files")
    @router.get("/api/files/{path:path}")
    async def api_list_files(
        path: str = "",
        page: int = 1,
        page_size: Optional[int] = Query(None, alias="pageSize"),
        show_hidden: bool = Query(True, alias="showHidden"),
    ):
        """List directory contents, directories first."""
        result = await run_in_threadpool(vault.list_dir, path, page, page_size, show_hidden)
        raise_for_failure(result)
        return {
            "files": [f.to_dict() for f in result.data["files"]],
            "path": result.path,
            "page": result.data["page"],
            "pageSize": result.data["page_size"],
            "total": result.data["total"],
        }

    return router


__all__ = ["create_router", "raise_for_failure", "FAILURE_STATUS"]
