"""Tax bracket and calculation API endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.deps import get_tax_service
from src.core.logging import get_logger
from src.tax.errors import TaxApiError, TaxErrorKind
from src.tax.models import TaxCalculationRequest
from src.tax.service import TaxCalculatorService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tax", tags=["tax"])

ERROR_STATUS: dict[TaxErrorKind, int] = {
    TaxErrorKind.INVALID_TAX_YEAR: 422,
    TaxErrorKind.INVALID_INCOME: 422,
    TaxErrorKind.INVALID_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    TaxErrorKind.NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    TaxErrorKind.SERVER_ERROR: status.HTTP_502_BAD_GATEWAY,
    TaxErrorKind.CANCELLED: status.HTTP_504_GATEWAY_TIMEOUT,
}


class CalculateTaxPayload(BaseModel):
    """Inbound calculation request."""

    annual_income: Decimal
    tax_year: int


class BracketOut(BaseModel):
    """Bracket in wire shape with decimal strings."""

    min: str
    max: str | None = None
    rate: str


class BracketAllocationOut(BaseModel):
    bracket: BracketOut
    taxable_amount: str
    tax_amount: str


class TaxBracketsOut(BaseModel):
    """Response for the bracket lookup endpoint."""

    tax_year: int
    tax_brackets: list[BracketOut]


class TaxCalculationOut(BaseModel):
    """Response for the calculation endpoint. Values are unrounded."""

    total_tax: str
    effective_rate: str
    marginal_rate: str | None
    per_bracket: list[BracketAllocationOut]


def _http_status_for(exc: TaxApiError) -> int:
    if exc.kind is TaxErrorKind.SERVER_ERROR and exc.status and 400 <= exc.status < 600:
        return exc.status
    return ERROR_STATUS[exc.kind]


async def tax_api_error_handler(request: Request, exc: TaxApiError) -> JSONResponse:
    """Render TaxApiError as ``{"error": {...}}`` with a mapped HTTP status."""
    http_status = _http_status_for(exc)
    logger.info(
        "tax_api_error_response",
        path=request.url.path,
        http_status=http_status,
        kind=exc.kind.value,
        code=exc.code,
    )
    return JSONResponse(status_code=http_status, content={"error": exc.to_dict()})


@router.get("/brackets/{tax_year}", response_model=TaxBracketsOut)
async def get_tax_brackets(
    tax_year: int,
    service: Annotated[TaxCalculatorService, Depends(get_tax_service)],
    deadline: Annotated[float | None, Query(gt=0)] = None,
) -> TaxBracketsOut:
    """Return the bracket table for a supported tax year."""
    table = await service.fetch_brackets(tax_year, deadline=deadline)
    return TaxBracketsOut(
        tax_year=tax_year,
        tax_brackets=[BracketOut(**bracket.to_dict()) for bracket in table],
    )


@router.post("/calculate", response_model=TaxCalculationOut)
async def calculate_tax(
    payload: CalculateTaxPayload,
    service: Annotated[TaxCalculatorService, Depends(get_tax_service)],
    deadline: Annotated[float | None, Query(gt=0)] = None,
) -> TaxCalculationOut:
    """Calculate marginal tax for an income and tax year."""
    result = await service.calculate(
        TaxCalculationRequest(
            annual_income=payload.annual_income,
            tax_year=payload.tax_year,
        ),
        deadline=deadline,
    )
    return TaxCalculationOut.model_validate(result.to_dict())
