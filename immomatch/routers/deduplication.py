import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from immomatch.database import SessionLocal, get_db
from immomatch.schemas.deduplication import DeduplicationScanResult, DeduplicationStatus
from immomatch.services.deduplication import (
    DeduplicationScanInProgress,
    is_scan_running,
    run_deduplication_scan,
)

router = APIRouter(prefix="/api/deduplication", tags=["deduplication"])
logger = logging.getLogger(__name__)

scan_status = {
    "last_run": None,
    "last_result": None,
    "last_error": None
}


def run_scan_task():
    """Фоновая задача дедупликации, со своей сессией БД"""
    global scan_status
    db = SessionLocal()
    try:
        result = run_deduplication_scan(db)
        scan_status["last_result"] = result
        scan_status["last_error"] = None
    except DeduplicationScanInProgress:
        logger.info("Background dedup scan skipped: another scan is running")
    except Exception as e:
        logger.exception("Background dedup scan failed")
        scan_status["last_error"] = str(e)
    finally:
        scan_status["last_run"] = datetime.now(timezone.utc).isoformat()
        db.close()


@router.post("/scan", response_model=DeduplicationScanResult)
def scan(db: Session = Depends(get_db)):
    """Запустить дедупликацию синхронно"""
    try:
        result = run_deduplication_scan(db)
    except DeduplicationScanInProgress:
        raise HTTPException(status_code=409, detail="Дедупликация уже выполняется")
    scan_status["last_run"] = result["timestamp"]
    scan_status["last_result"] = result
    scan_status["last_error"] = None
    return result


@router.post("/scan/background")
def scan_background(background_tasks: BackgroundTasks):
    """Запустить дедупликацию в фоновом режиме"""
    if is_scan_running():
        return {
            "message": "Дедупликация уже выполняется",
            "status": "already_running"
        }
    background_tasks.add_task(run_scan_task)
    return {
        "message": "Дедупликация запущена",
        "status": "started"
    }


@router.get("/status", response_model=DeduplicationStatus)
def get_scan_status():
    """Получить статус дедупликации"""
    return DeduplicationStatus(is_running=is_scan_running(), **scan_status)
