"""
FastAPI Web Application for the Agency Report Engine
Exposes field listing, configuration validation, report generation and export.
"""

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from dataclasses import asdict, dataclass
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import os
import secrets
import uvicorn
from dotenv import load_dotenv
import logging

from data_sources import AgencyDataStore
from field_catalog import FieldCatalog
from report_engine import ReportEngine
from report_export import report_to_csv_string
from report_formatting import DEFAULT_CURRENCY_CODE, FieldFormatter
from report_models import ConfigurationInvalid, GeneratedReport, ReportConfiguration

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = 'data/sample_agency_data.json'
REPORTS_RATE_LIMIT = os.getenv('REPORTS_RATE_LIMIT', '30/minute')

app = FastAPI(title="Agency Report Engine", version="1.0.0")

# Add rate limiting
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_engine: Optional[ReportEngine] = None


def get_engine() -> ReportEngine:
    """Engine over the agency data file, loaded on first use"""
    global _engine
    if _engine is None:
        data_file = os.getenv('AGENCY_DATA_FILE', DEFAULT_DATA_FILE)
        store = AgencyDataStore.from_json_file(data_file)
        formatter = FieldFormatter(currency_code=os.getenv('REPORT_CURRENCY_CODE', DEFAULT_CURRENCY_CODE))
        _engine = ReportEngine(store.connector(), catalog=FieldCatalog.default(), formatter=formatter)
    return _engine


@dataclass(frozen=True)
class ActingUser:
    """Identity a report runs as, resolved from the caller's API key"""
    user_id: str
    role: str


def parse_api_keys(raw: str) -> Dict[str, ActingUser]:
    """
    Parse API key assignments

    Args:
        raw: Comma-separated 'key=user_id:role' entries

    Returns:
        Dictionary mapping each key to the user it authenticates

    Raises:
        ValueError: If an entry is malformed or names an unknown role
    """
    api_keys = {}
    for entry in raw.split(','):
        entry = entry.strip()
        if not entry:
            continue
        key, _, identity = entry.partition('=')
        user_id, _, role = identity.partition(':')
        if not key or not user_id or role not in ('admin', 'agent'):
            raise ValueError(f"Invalid API key entry: {entry!r} (expected key=user_id:admin|agent)")
        api_keys[key] = ActingUser(user_id=user_id, role=role)
    return api_keys


_api_keys: Optional[Dict[str, ActingUser]] = None


def get_api_keys() -> Dict[str, ActingUser]:
    """API keys from REPORT_API_KEYS, parsed on first use"""
    global _api_keys
    if _api_keys is None:
        _api_keys = parse_api_keys(os.getenv('REPORT_API_KEYS', ''))
        if not _api_keys:
            logger.warning("REPORT_API_KEYS is not set; report endpoints will reject every request")
    return _api_keys


def get_acting_user(x_api_key: Optional[str] = Header(None),
                    api_keys: Dict[str, ActingUser] = Depends(get_api_keys)) -> ActingUser:
    """Resolve the caller from the X-API-Key header"""
    if x_api_key:
        for key, user in api_keys.items():
            if secrets.compare_digest(key.encode(), x_api_key.encode()):
                return user
    raise HTTPException(status_code=401, detail="Missing or invalid API key.")


class ValidateRequest(BaseModel):
    """Request model for configuration validation"""
    config: Dict[str, Any]


class ReportRequest(BaseModel):
    """Request model for report generation"""
    config: Dict[str, Any]
    template_id: str = Field("", max_length=200)
    template_name: str = Field("Custom Report", min_length=1, max_length=200)


class ExportRequest(ReportRequest):
    """Request model for report export"""
    format: str = Field("csv", pattern="^(csv|json)$")


def _serialize_field(available) -> Dict[str, Any]:
    data = asdict(available)
    data['type'] = available.type.value
    return data


def _generate(report_request: ReportRequest, user: ActingUser, engine: ReportEngine) -> GeneratedReport:
    try:
        config = ReportConfiguration.from_dict(report_request.config)
        return engine.generate(
            config,
            user.user_id,
            user.role,
            template_id=report_request.template_id,
            template_name=report_request.template_name,
        )
    except ConfigurationInvalid as e:
        logger.warning(f"Rejected report configuration: {e.errors}")
        raise HTTPException(status_code=400, detail={"errors": e.errors})


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/fields/{source}")
def list_fields(source: str, engine: ReportEngine = Depends(get_engine)):
    """List the fields a data source exposes"""
    fields = engine.catalog.list_fields(source)
    return {"source": source, "fields": [_serialize_field(f) for f in fields]}


@app.post("/api/reports/validate")
def validate_report(validate_request: ValidateRequest, engine: ReportEngine = Depends(get_engine)):
    """Validate a report configuration"""
    try:
        config = ReportConfiguration.from_dict(validate_request.config)
    except ConfigurationInvalid as e:
        return {"is_valid": False, "errors": e.errors}

    result = engine.validate(config)
    return {"is_valid": result.is_valid, "errors": result.errors}


@app.post("/api/reports/generate")
@limiter.limit(REPORTS_RATE_LIMIT)
def generate_report(report_request: ReportRequest, request: Request,
                    user: ActingUser = Depends(get_acting_user),
                    engine: ReportEngine = Depends(get_engine)):
    """Generate a report"""
    try:
        report = _generate(report_request, user, engine)
        return report.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while generating the report.")


@app.post("/api/reports/export")
@limiter.limit(REPORTS_RATE_LIMIT)
def export_report(export_request: ExportRequest, request: Request,
                  user: ActingUser = Depends(get_acting_user),
                  engine: ReportEngine = Depends(get_engine)):
    """Generate a report and return it as a CSV or JSON download"""
    try:
        report = _generate(export_request, user, engine)
        filename = f"{report.id}.{export_request.format}"
        headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

        if export_request.format == 'csv':
            return Response(content=report_to_csv_string(report), media_type="text/csv", headers=headers)
        return JSONResponse(content=report.to_dict(), headers=headers)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error exporting report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while exporting the report.")


if __name__ == "__main__":
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', '8000'))
    print("Starting Agency Report Engine API...")
    print(f"API Documentation: http://localhost:{port}/docs")
    print("Press CTRL+C to stop the server")

    uvicorn.run(app, host=host, port=port)
