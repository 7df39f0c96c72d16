"""API route for device reading ingestion."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from sensorwatch.api.domain.schemas import IngestRequest, IngestResponse
from sensorwatch.api.routers.dependencies import get_monitoring_service
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.domain.exceptions import (
    DeviceNotFoundError,
    IngestAuthenticationError,
    InvalidReadingError,
    StorageError,
)
from sensorwatch.monitoring.domain.models import Reading

router = APIRouter(prefix="/api/ingest", tags=["ingest"])


@router.post("", response_model=IngestResponse)
async def ingest_readings(
    data: IngestRequest,
    service: MonitoringService = Depends(get_monitoring_service),
):
    """
    Accept a batch of readings from a device.

    Readings are stored, duplicates (same device and timestamp) are skipped,
    and alerts are opened or recovered in timestamp order. Re-sending the same
    batch is harmless.

    - **device_id**: Device identifier
    - **ingest_key**: Per-device shared secret
    - **readings**: 1 to `MONITORING_MAX_BATCH_SIZE` items with `ts`, `temp_c` (°C) and `rh` (%RH)
    """
    readings = [Reading(ts=r.ts, temp_c=r.temp_c, rh=r.rh) for r in data.readings]

    try:
        result = await service.ingest(data.device_id, readings, ingest_key=data.ingest_key)
    except IngestAuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidReadingError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        logger.error(f"Ingest storage failure: {e.details}")
        raise HTTPException(status_code=503, detail="Storage unavailable, retry the batch")

    return IngestResponse(
        device_id=result.device_id,
        stored=result.stored,
        duplicates=result.duplicates,
        stale=result.stale,
        opened=len(result.opened),
        recovered=len(result.closed),
        status=result.status,
    )
