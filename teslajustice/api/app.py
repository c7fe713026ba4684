"""
FastAPI application for the TeslaJustice case tracker.
Provides the monitoring trigger and case management endpoints.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from teslajustice.cases.dedup import DeduplicationEngine
from teslajustice.cases.manager import CaseManager
from teslajustice.core import config
from teslajustice.core.database import init_db
from teslajustice.core.errors import (
    CaseNotFoundError,
    InvalidStatusError,
    TeslaJusticeError,
)
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import (
    AccountCreate,
    CasePatch,
    DuplicateMark,
    KeywordCreate,
    SourceCreate,
    StatusChange,
)
from teslajustice.intel.analyzer import KeywordAnalyzer
from teslajustice.intel.ingestor import TwitterIngestor
from teslajustice.intel.monitor import MonitoringCycle
from teslajustice.intel.scheduler import MonitoringScheduler

logger = logging.getLogger(__name__)

app = FastAPI(
    title="TeslaJustice",
    description="Collects social media reports of Tesla vandalism and groups them into cases.",
    version="0.1.0",
)


def get_ingestor():
    return TwitterIngestor()


def get_analyzer():
    return KeywordAnalyzer()


def _run_scheduled_cycle():
    repository = CaseRepository()
    try:
        MonitoringCycle(repository, get_ingestor(), get_analyzer(),
                        request_delay=config.MONITORING_REQUEST_DELAY).run_cycle()
    finally:
        repository.close()


def _run_scheduled_sweep():
    repository = CaseRepository()
    try:
        MonitoringCycle(repository, get_ingestor(), get_analyzer()).check_all_cases_for_updates()
    finally:
        repository.close()


@app.on_event("startup")
def startup():
    init_db()
    app.state.scheduler = None
    if config.MONITORING_AUTOSTART:
        app.state.scheduler = MonitoringScheduler(
            _run_scheduled_cycle,
            interval_minutes=config.MONITORING_INTERVAL_MINUTES,
            sweep=_run_scheduled_sweep,
        )
        app.state.scheduler.start()


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.stop(timeout=5)


# --- Monitoring ---

@app.get("/api/run-monitoring", tags=["Monitoring"])
def run_monitoring(ingestor=Depends(get_ingestor), analyzer=Depends(get_analyzer)):
    """Run one full monitoring cycle and report how many cases it touched."""
    repository = CaseRepository()
    try:
        monitor = MonitoringCycle(repository, ingestor, analyzer,
                                  request_delay=config.MONITORING_REQUEST_DELAY)
        summary = monitor.run_cycle()
        return {
            "success": True,
            "message": "Monitoring cycle completed successfully",
            "results": {
                "newCases": summary.total_new_cases,
                "updatedCases": summary.total_updated_cases,
                "processingTimeSeconds": summary.processing_time,
                "timestamp": datetime.utcnow().isoformat(),
            },
        }
    except Exception as e:
        logger.error(f"Error running monitoring cycle: {e}")
        return JSONResponse(status_code=500, content={
            "success": False,
            "message": "Failed to run monitoring cycle",
            "error": str(e) or e.__class__.__name__,
        })
    finally:
        repository.close()


@app.post("/api/run-update-check", tags=["Monitoring"])
def run_update_check(ingestor=Depends(get_ingestor), analyzer=Depends(get_analyzer)):
    """Look for replies to the posts of every open case."""
    repository = CaseRepository()
    try:
        summary = MonitoringCycle(repository, ingestor, analyzer).check_all_cases_for_updates()
        return summary.model_dump()
    except TeslaJusticeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        repository.close()


@app.get("/api/monitoring/keywords", tags=["Monitoring"])
def list_keywords(platform: Optional[str] = None):
    repository = CaseRepository()
    try:
        keywords = repository.active_keywords(platform)
        return {"keywords": [
            {"id": k.id, "keyword": k.keyword, "platform": k.platform, "priority": k.priority}
            for k in keywords
        ]}
    finally:
        repository.close()


@app.post("/api/monitoring/keywords", tags=["Monitoring"])
def add_keyword(body: KeywordCreate):
    repository = CaseRepository()
    try:
        keyword = repository.add_keyword(body.keyword, body.platform, body.priority)
        return {"id": keyword.id, "status": "created"}
    finally:
        repository.close()


@app.get("/api/monitoring/accounts", tags=["Monitoring"])
def list_accounts(platform: Optional[str] = None):
    repository = CaseRepository()
    try:
        accounts = repository.active_accounts(platform)
        return {"accounts": [
            {"id": a.id, "username": a.username, "platform": a.platform, "priority": a.priority}
            for a in accounts
        ]}
    finally:
        repository.close()


@app.post("/api/monitoring/accounts", tags=["Monitoring"])
def add_account(body: AccountCreate):
    repository = CaseRepository()
    try:
        account = repository.add_account(body.username, body.platform, body.priority)
        return {"id": account.id, "status": "created"}
    except TeslaJusticeError:
        raise HTTPException(status_code=409, detail=f"Account {body.username} is already monitored")
    finally:
        repository.close()


# --- Sources ---

@app.post("/api/sources", tags=["Sources"])
def submit_source(source: SourceCreate, force: bool = False, analyzer=Depends(get_analyzer)):
    """Submit a single post manually. Irrelevant posts are ignored unless forced."""
    repository = CaseRepository()
    try:
        analysis = analyzer.analyze(source.content)
        analysis.platform = source.platform
        if not analysis.is_relevant and not force:
            return {"status": "ignored", "relevance_score": analysis.relevance_score}
        if not analysis.media_urls:
            analysis.media_urls = list(source.media)

        result = DeduplicationEngine(repository, analyzer).resolve_incident(source, analysis)
        return {"status": "processed", **result.model_dump()}
    except TeslaJusticeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        repository.close()


# --- Cases ---

@app.get("/api/cases", tags=["Cases"])
def list_cases(
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    """List cases, newest first, with optional filters."""
    repository = CaseRepository()
    try:
        filters = {
            "status": status,
            "target_type": target_type,
            "location_city": city,
            "location_state": state,
            "search": search,
        }
        return CaseManager(repository).list_cases(filters, page, page_size)
    finally:
        repository.close()


@app.get("/api/cases/{case_id}", tags=["Cases"])
def get_case(case_id: int):
    """A case with its media, public timeline and related cases."""
    repository = CaseRepository()
    try:
        return CaseManager(repository).get_case_with_details(case_id).model_dump(mode="json")
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    finally:
        repository.close()


@app.patch("/api/cases/{case_id}", tags=["Cases"])
def update_case(case_id: int, body: CasePatch):
    repository = CaseRepository()
    try:
        case = CaseManager(repository).update_case(case_id, body.model_dump(exclude_unset=True))
        return case.model_dump(mode="json")
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    finally:
        repository.close()


@app.post("/api/cases/{case_id}/status", tags=["Cases"])
def change_status(case_id: int, body: StatusChange):
    repository = CaseRepository()
    try:
        case = CaseManager(repository).update_case_status(case_id, body.status, body.reason)
        return case.model_dump(mode="json")
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except InvalidStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        repository.close()


@app.post("/api/cases/{case_id}/duplicate", tags=["Cases"])
def mark_duplicate(case_id: int, body: DuplicateMark):
    repository = CaseRepository()
    try:
        case = CaseManager(repository).mark_duplicate(case_id, body.duplicate_of)
        return case.model_dump(mode="json")
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TeslaJusticeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        repository.close()


# --- System ---

@app.get("/api/status", tags=["System"])
def system_status():
    scheduler = getattr(app.state, "scheduler", None)
    return {
        "status": "operational",
        "version": "0.1.0",
        "platforms": config.PLATFORMS,
        "scheduler_running": bool(scheduler and scheduler.is_running),
        "timestamp": datetime.utcnow().isoformat(),
    }
