import logging
import math
import os
from io import BytesIO
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from refi_agent.calculator import LoanScenario, SavingsResult, compute_savings, scenario_from_inputs
from refi_agent.formatting import classify_savings, format_currency
from refi_agent.report import generate_pdf, scenario_to_xlsx


logger = logging.getLogger(__name__)

API_KEY = os.getenv("API_KEY")

DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
EXPORT_RATE_LIMIT = os.getenv("RATE_LIMIT_EXPORT", "15/minute")
MAX_EXPORT_BYTES = int(os.getenv("MAX_EXPORT_BYTES", str(6 * 1024 * 1024)))

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return get_remote_address(request)


limiter = Limiter(key_func=_client_ip, default_limits=[DEFAULT_RATE_LIMIT])

app = FastAPI(
    title="Refi Agent",
    description="Mortgage refinance calculator: compare the monthly payment of your current loan with a refinance.",
    version="0.1.0",
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


def require_api_key(request: Request):
    if not API_KEY:
        return
    provided = request.headers.get("x-api-key")
    if not provided or provided != API_KEY:
        raise HTTPException(status_code=401, detail="invalid or missing api key")


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"})


RawField = Union[float, str, None]


class RefinanceRequest(BaseModel):
    # Raw form values: numbers or text. Text that does not read as a number is
    # not rejected, it yields NaN and the matching payment comes back null.
    current_loan_amount: RawField = Field(None, description="Current loan amount ($)")
    current_interest_rate: RawField = Field(None, description="Current annual interest rate (%), e.g. 6")
    remaining_term: RawField = Field(None, description="Remaining term of the current loan (years)")
    new_loan_amount: RawField = Field(None, description="New loan amount ($)")
    new_interest_rate: RawField = Field(None, description="New annual interest rate (%), e.g. 4")
    new_loan_term: RawField = Field(None, description="New loan term (years)")

    def scenarios(self) -> tuple[LoanScenario, LoanScenario]:
        current = scenario_from_inputs(self.current_loan_amount, self.current_interest_rate, self.remaining_term)
        refinanced = scenario_from_inputs(self.new_loan_amount, self.new_interest_rate, self.new_loan_term)
        return current, refinanced


class RefinanceResponse(BaseModel):
    # JSON cannot carry NaN/inf: non-finite figures are null, displays are "0.00"
    current_payment: Optional[float]
    new_payment: Optional[float]
    monthly_savings: Optional[float]
    current_payment_display: str
    new_payment_display: str
    monthly_savings_display: str
    savings_sign: Optional[str]


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _run(body: RefinanceRequest) -> tuple[LoanScenario, LoanScenario, SavingsResult]:
    current, refinanced = body.scenarios()
    result = compute_savings(current, refinanced)
    if not all(math.isfinite(v) for v in (result.current_payment, result.new_payment)):
        logger.warning(
            "non-finite refinance payment: current=%r new=%r (current=%r refinanced=%r)",
            result.current_payment,
            result.new_payment,
            current,
            refinanced,
        )
    logger.debug("refinance savings computed: %r", result)
    return current, refinanced, result


@app.get("/health", tags=["health"])
@limiter.exempt
def health() -> dict:
    return {"status": "ok"}


@app.post("/v1/mortgages/refinance:calc", tags=["refinance"])
@limiter.limit(DEFAULT_RATE_LIMIT)
def calc_refinance(request: Request, body: RefinanceRequest, _=Depends(require_api_key)) -> RefinanceResponse:
    result = _run(body)[2]
    return RefinanceResponse(
        current_payment=_finite_or_none(result.current_payment),
        new_payment=_finite_or_none(result.new_payment),
        monthly_savings=_finite_or_none(result.monthly_savings),
        current_payment_display=format_currency(result.current_payment),
        new_payment_display=format_currency(result.new_payment),
        monthly_savings_display=format_currency(result.monthly_savings),
        savings_sign=classify_savings(result.monthly_savings),
    )


@app.post(
    "/v1/mortgages/refinance:export-xlsx",
    tags=["refinance"],
    responses={413: {"description": "Export too large"}},
)
@limiter.limit(EXPORT_RATE_LIMIT)
def export_xlsx(request: Request, body: RefinanceRequest, _=Depends(require_api_key)):
    """Export the comparison as an Excel workbook."""
    current, refinanced, result = _run(body)
    content = scenario_to_xlsx(current, refinanced, result)
    _ensure_export_size(len(content))
    logger.info("exported refinance xlsx (%d bytes)", len(content))

    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": "attachment; filename=refinance.xlsx",
            "X-Monthly-Savings": _savings_header(result),
        },
    )


@app.post(
    "/v1/mortgages/refinance:export-pdf",
    tags=["refinance"],
    responses={413: {"description": "Export too large"}},
)
@limiter.limit(EXPORT_RATE_LIMIT)
def export_pdf(request: Request, body: RefinanceRequest, _=Depends(require_api_key)):
    """Export the comparison as a one-page PDF report."""
    current, refinanced, result = _run(body)
    content = generate_pdf(current=current, refinanced=refinanced, result=result)
    _ensure_export_size(len(content))

    return StreamingResponse(
        BytesIO(content),
        media_type="application/pdf",
        headers={
            "Content-Disposition": "attachment; filename=refinance-report.pdf",
            "X-Monthly-Savings": _savings_header(result),
        },
    )


def _savings_header(result: SavingsResult) -> str:
    # same fallback as the "0.00" display when the figure is not finite
    savings = float(result.monthly_savings)
    return f"{savings:.2f}" if math.isfinite(savings) else "0.00"


def _ensure_export_size(size_bytes: int) -> None:
    if size_bytes > MAX_EXPORT_BYTES:
        raise HTTPException(status_code=413, detail="export file too large")
