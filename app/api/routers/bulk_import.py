"""
app/api/routers/bulk_import.py

Two-phase bulk import HTTP endpoints: validate (stage) and confirm (commit).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import get_declared_delimiter, get_import_upload, get_record_store
from app.domain.bulk_import import ImportTarget
from app.domain.import_errors import (
    BatchAlreadyConfirmedError,
    BatchConfirmInProgressError,
    BatchExpiredError,
    BatchNotFoundError,
    ImportStageError,
    RowCountExceededError,
    SizeLimitExceededError,
    StoreUnavailableError,
)
from app.repositories.record_store import RecordStore
from app.schemas.bulk_import import ConfirmRequest, ConfirmResponse, StageResponse
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service

router = APIRouter(prefix="/api/v1", tags=["bulk-import"])


@router.post("/{target}/import/validate", response_model=StageResponse)
def validate_import(
    target: ImportTarget,
    file: UploadFile = Depends(get_import_upload),
    delimiter: str | None = Depends(get_declared_delimiter),
    store: RecordStore = Depends(get_record_store),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> StageResponse:
    """
    Analyse one file and stage its accepted rows without writing them.
    """

    try:
        payload = file.file.read()
        batch = import_service.stage(payload, target=target, store=store, delimiter=delimiter)
    except (SizeLimitExceededError, RowCountExceededError) as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=exc.to_dict(),
        ) from exc
    except ImportStageError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.to_dict(),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "invalid_delimiter", "message": str(exc)},
        ) from exc
    finally:
        file.file.close()

    return StageResponse.from_batch(batch)


@router.post("/{target}/import/confirm", response_model=ConfirmResponse)
def confirm_import(
    target: ImportTarget,
    request: ConfirmRequest,
    store: RecordStore = Depends(get_record_store),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> ConfirmResponse:
    """
    Commit a staged batch. A batch id can be confirmed only once.
    """

    try:
        result = import_service.confirm(request.batch_id, target=target, store=store)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_dict()) from exc
    except BatchExpiredError as exc:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=exc.to_dict()) from exc
    except (BatchAlreadyConfirmedError, BatchConfirmInProgressError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_dict()) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.to_dict(),
        ) from exc

    return ConfirmResponse.from_result(result)
