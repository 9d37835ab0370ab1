from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api.deps import get_current_username, get_notifier
from app.core.config import settings
from app.db.database import get_db
from app.schemas.csv_upload import CsvUploadResult
from app.services.csv_processing_service import (
    CSV_TEMPLATE_FILENAME,
    CsvBatchError,
    CsvProcessingService,
    generate_csv_template,
)
from app.services.record_store import SQLAlchemyRecordStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=CsvUploadResult)
async def upload_csv(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
    uploaded_by: str = Depends(get_current_username)
):
    """Upload and process an inventory CSV"""

    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")

    service = CsvProcessingService(
        SQLAlchemyRecordStore(db),
        notifier,
        settings.BASE_URL,
        max_upload_bytes=settings.CSV_MAX_UPLOAD_BYTES
    )

    try:
        result = await service.process_csv_upload(content, uploaded_by)
    except CsvBatchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Error processing CSV upload")
        raise HTTPException(status_code=500, detail="Failed to process CSV upload")

    logger.info(
        "CSV upload processed by %s. Success: %d, Failures: %d",
        uploaded_by, result.success_count, result.failure_count
    )
    return result


@router.get("/template")
async def download_template():
    """Download the CSV template"""

    return Response(
        content=generate_csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={CSV_TEMPLATE_FILENAME}"}
    )
