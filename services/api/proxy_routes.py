"""Catalog, company and invoice list endpoints.

These forward to the backend with the session's token and relay its reply.
Backend errors are relayed with the backend's status by the app-level
``UpstreamError`` handler.
"""

import csv
import io
import logging
from decimal import Decimal
from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from services.api.dependencies import backend, require_token, settings
from services.totals.engine import round2

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Proxy"])

ALLOWED_PICTURE_TYPES = {"image/png", "image/jpeg"}


class ItemForm(BaseModel):
    """Item create/update form."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(0, alias="itemID")
    item_name: str = Field(alias="itemName", min_length=1)
    description: str | None = ""
    sale_rate: Decimal = Field(Decimal("0"), alias="saleRate", ge=0)
    discount_percent: Decimal = Field(Decimal("0"), alias="discountPct", ge=0, le=100)
    updated_on_prev: str | None = Field(None, alias="updatedOnPrev")

    def to_backend(self) -> dict[str, Any]:
        """Body for ``/item/insertupdate``."""
        return {
            "itemID": self.item_id,
            "itemName": self.item_name.strip(),
            "description": self.description or "",
            "saleRate": float(self.sale_rate),
            "discountPct": float(self.discount_percent),
            "updatedOnPrev": self.updated_on_prev,
        }


class DeleteItemRequest(BaseModel):
    """Item to delete."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(alias="itemID")


@router.get("/company/info")
def company_info(token: str = Depends(require_token)) -> Any:
    """Company profile of the signed-in user."""
    return backend.fetch("GET", "/company/info", token=token)


@router.get("/item/getlist")
def item_list(token: str = Depends(require_token)) -> Any:
    """All catalog items."""
    return backend.fetch("GET", "/item/getlist", token=token)


@router.get("/item/getlookuplist")
def item_lookup_list(token: str = Depends(require_token)) -> Any:
    """Catalog entries for the line item picker."""
    return backend.fetch("GET", "/item/getlookuplist", token=token)


@router.get("/item/export")
def export_items(token: str = Depends(require_token)) -> Response:
    """Download the item list as CSV."""
    rows = backend.fetch("GET", "/item/getlist", token=token) or []

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Item Name", "Description", "Sale Rate", "Discount %"])
    for row in rows:
        writer.writerow(
            [
                row.get("itemName", ""),
                row.get("description") or "",
                f"{_decimal(row.get('saleRate')):.2f}",
                f"{_decimal(row.get('discountPct')):.2f}",
            ]
        )

    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="items.csv"'},
    )


@router.get("/item/{item_id}")
def item_detail(item_id: int, token: str = Depends(require_token)) -> Any:
    """One catalog item."""
    return backend.fetch("GET", f"/Item/{item_id}", token=token)


@router.post("/item/insertupdate")
def save_item(form: ItemForm, token: str = Depends(require_token)) -> Any:
    """Create or update a catalog item."""
    return backend.fetch("POST", "/item/insertupdate", token=token, json_body=form.to_backend())


@router.put("/item/update")
async def update_item(request: Request, token: str = Depends(require_token)) -> Any:
    """Update a catalog item, forwarding the body unchanged."""
    body = await request.json()
    return await run_in_threadpool(backend.fetch, "PUT", "/item/update", token=token, json_body=body)


@router.post("/item/delete")
def delete_item(body: DeleteItemRequest, token: str = Depends(require_token)) -> Any:
    """Delete a catalog item."""
    logger.info(f"Deleting item {body.item_id}")
    return backend.fetch(
        "POST",
        "/item/delete",
        token=token,
        json_body={"itemID": body.item_id},
        wrap_errors=True,
    )


@router.post("/item/picture")
async def upload_item_picture(
    item_id: int = Form(..., alias="itemID"),  # noqa: B008
    file: UploadFile = File(..., alias="File"),  # noqa: B008
    token: str = Depends(require_token),
) -> Any:
    """Replace an item's picture.

    Raises:
        HTTPException: 400 if the file is not a PNG/JPEG or is too large
    """
    if file.content_type not in ALLOWED_PICTURE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file type.")

    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file size.")

    return await run_in_threadpool(
        backend.fetch,
        "POST",
        "/Item/UpdateItemPicture",
        token=token,
        data={"itemID": str(item_id)},
        files=[("File", (file.filename, content, file.content_type))],
    )


@router.get("/invoice/getlist")
def invoice_list(
    invoice_id: int | None = Query(None, alias="invoiceID"),
    token: str = Depends(require_token),
) -> Any:
    """Invoice list, or a single invoice when ``invoice_id`` is given."""
    params = {"invoiceID": invoice_id} if invoice_id is not None else None
    return backend.fetch("GET", "/invoice/getlist", token=token, params=params)


@router.get("/invoice/getmetrics")
def invoice_metrics(request: Request, token: str = Depends(require_token)) -> Any:
    """Invoice count and amount metrics; filters are forwarded as given."""
    return backend.fetch(
        "GET",
        "/invoice/getmetrics",
        token=token,
        params=request.query_params.multi_items(),
        wrap_errors=True,
    )


@router.get("/invoice/topitems")
def invoice_top_items(token: str = Depends(require_token)) -> Any:
    """Best-selling items by invoiced amount."""
    return backend.fetch("GET", "/invoice/topitems", token=token)


@router.get("/invoice/gettrend12m")
def invoice_trend(token: str = Depends(require_token)) -> Any:
    """Monthly invoice counts and amounts over the last 12 months."""
    return backend.fetch("GET", "/invoice/gettrend12m", token=token)


def _decimal(value: Any) -> Decimal:
    return round2(Decimal(str(value or 0)))
