"""
Data retrieval and file export endpoints
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, Response
from api.dependencies import get_loader
from ingestion.loaders.file_loader import FileLoader
from schemas.api import DataResponse, ErrorResponse
from schemas.normalized import utc_now
from core.exceptions import NotFoundError
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Data"])


def export_filename(path: Path) -> str:
    """universities.csv -> universities-2024-01-15.csv"""
    return f"{path.stem}-{utc_now().date().isoformat()}{path.suffix}"


@router.get(
    "/data",
    response_model=DataResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_data(
    request: Request,
    limit: int = Query(10, ge=1, le=10000, description="Maximum records to return"),
    search: Optional[str] = Query(None, description="Search in names and domains"),
    loader: FileLoader = Depends(get_loader)
):
    """
    Search and list records from the current snapshot.

    Features:
    - Case-insensitive search on university name and domains
    - Result limit, with the unlimited match count in `total`
    """
    request_id = getattr(request.state, "request_id", "-")
    snapshot = await loader.read_or_raise()

    results = snapshot.records
    if search:
        term = search.lower()
        results = [
            record for record in results
            if term in record.name.lower() or any(term in domain for domain in record.domains)
        ]

    logger.info(f"[{request_id}] GET /api/data - search={search!r}, matches={len(results)}")

    return DataResponse(total=len(results), data=results[:limit])


@router.get("/download/csv", responses={404: {"model": ErrorResponse}})
async def download_csv(loader: FileLoader = Depends(get_loader)):
    """CSV export; rebuilt from the snapshot if the file is missing"""
    if not loader.csv_path.exists():
        snapshot = await loader.read_or_raise()
        if await loader.generate_csv(snapshot.records) is None:
            raise NotFoundError("No data available", context={"path": str(loader.csv_path)})

    return FileResponse(
        loader.csv_path,
        media_type="text/csv",
        filename=export_filename(loader.csv_path)
    )


@router.get("/download/json", responses={404: {"model": ErrorResponse}})
async def download_json(loader: FileLoader = Depends(get_loader)):
    """Structured export of the current snapshot"""
    snapshot = await loader.read_or_raise()

    return Response(
        content=snapshot.model_dump_json(by_alias=True, indent=2),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(loader.json_path)}"'
        }
    )
