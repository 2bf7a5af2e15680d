"""Supplier API endpoint: connection checks, sample pages and field discovery."""

from typing import Any, Awaitable, Callable, Dict, Tuple

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData

from app.core.enums import ExternalAction
from app.core.exceptions import AppError, InternalServerError, InvalidActionError, ValidationError
from app.core.logging import get_logger
from app.middleware.auth import get_current_shop
from app.services.supplier_client import SupplierClient, get_supplier_client

logger = get_logger(__name__)

router = APIRouter(prefix="/app/api", tags=["external"])

ActionHandler = Callable[[SupplierClient, FormData, str, str], Awaitable[Dict[str, Any]]]


def _form_str(form: FormData, name: str) -> str:
    value = form.get(name)
    return value if isinstance(value, str) else ""


def _require_credentials(form: FormData) -> Tuple[str, str]:
    api_url = _form_str(form, "apiUrl").strip()
    access_token = _form_str(form, "accessToken").strip()
    if not api_url or not access_token:
        raise ValidationError(message="Missing apiUrl or accessToken")
    return api_url, access_token


def parse_page(raw: str) -> int:
    """Page number from the form; anything unusable means the first page."""
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return 1
    return page if page > 1 else 1


async def _validate_connection(
    client: SupplierClient, form: FormData, api_url: str, access_token: str
) -> Dict[str, Any]:
    logger.info("Validating supplier API")
    result = await client.probe(api_url, access_token)
    return result.model_dump(by_alias=True)


async def _fetch_sample_data(
    client: SupplierClient, form: FormData, api_url: str, access_token: str
) -> Dict[str, Any]:
    page = parse_page(_form_str(form, "page"))
    result = await client.fetch_sample(api_url, access_token, page=page)
    logger.info(
        "Fetched sample page",
        extra={"page": page, "items": len(result.items), "has_next_page": result.pagination.has_next_page},
    )
    return result.model_dump(by_alias=True)


async def _fetch_sample_fields(
    client: SupplierClient, form: FormData, api_url: str, access_token: str
) -> Dict[str, Any]:
    result = await client.discover_fields(api_url, access_token)
    logger.info("Discovered sample fields", extra={"fields": len(result.fields)})
    return result.model_dump(by_alias=True, exclude_none=True)


ACTION_HANDLERS: Dict[ExternalAction, ActionHandler] = {
    ExternalAction.VALIDATE_CONNECTION: _validate_connection,
    ExternalAction.FETCH_SAMPLE_DATA: _fetch_sample_data,
    ExternalAction.FETCH_SAMPLE_FIELDS: _fetch_sample_fields,
}


@router.post("/external")
async def external_action(
    request: Request,
    shop: str = Depends(get_current_shop),
    client: SupplierClient = Depends(get_supplier_client),
):
    """
    Dispatch one supplier API action.

    Form fields: ``action`` plus ``apiUrl``, ``accessToken`` and, for
    ``fetchSampleData``, an optional ``page``. Handlers are independent and
    stateless; a failed call is reported once and never retried.
    """
    try:
        form = await request.form()
        raw_action = _form_str(form, "action")
        action = ExternalAction.parse(raw_action)
        if action is None:
            raise InvalidActionError(raw_action or None)

        api_url, access_token = _require_credentials(form)
        return await ACTION_HANDLERS[action](client, form, api_url, access_token)
    except AppError:
        raise
    except Exception:
        logger.exception("Supplier API action failed unexpectedly")
        raise InternalServerError()
