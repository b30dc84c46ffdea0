"""
Action endpoint: one POST route, dispatched on the ``action`` field of the JSON body.

Each handler runs inside ``Database.run`` and receives the session plus its validated
payload model. Business rejections come back as ``success: false`` with HTTP 200.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Tuple, Type
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from keyauth.api.deps import get_database
from keyauth.config import settings
from keyauth.database import Database
from keyauth.core.access import (
    resolve_permission,
    count_owned_applications,
    require_application_permission,
)
from keyauth.core.envelope import envelope, ok, rejected
from keyauth.core.exceptions import InvalidRequestException
from keyauth.core.logging_utils import get_request_id, sanitize_log_message
from keyauth.models.application import Application
from keyauth.schemas import (
    ActionRequest,
    UserRequest,
    CreateAppRequest,
    DeleteAppRequest,
    AppScopedRequest,
    KeyScopedRequest,
    CreateKeyRequest,
    SupportChangeRequest,
    ValidateKeyRequest,
    CheckPermissionRequest,
    ApplicationResponse,
    KeyRecord,
    KeySummary,
    SupportResponse,
)
from keyauth.services.application_service import ApplicationService
from keyauth.services.key_service import KeyService
from keyauth.services.support_service import SupportService
from keyauth.services.validation_service import ValidationService

logger = logging.getLogger(__name__)

router = APIRouter()

Handler = Callable[[AsyncSession, Any], Awaitable[JSONResponse]]


def _applications(rows: List[Tuple[Application, int]]) -> List[dict]:
    items = []
    for application, key_count in rows:
        item = ApplicationResponse.model_validate(application).model_dump()
        item["key_count"] = key_count
        items.append(item)
    return items


# Applications

async def handle_create_app(db: AsyncSession, payload: CreateAppRequest) -> JSONResponse:
    application = await ApplicationService.create_application(db, payload.app_name, payload.user_id)
    return ok("App created successfully", api_key=application.api_key)


async def handle_delete_app(db: AsyncSession, payload: DeleteAppRequest) -> JSONResponse:
    await ApplicationService.delete_application(db, payload.app_name, payload.user_id)
    return ok("App deleted successfully")


async def handle_get_apps(db: AsyncSession, payload: UserRequest) -> JSONResponse:
    rows, decision = await ApplicationService.list_applications(db, payload.user_id)
    return ok("Applications", applications=_applications(rows), is_admin=decision.is_main_admin)


async def handle_get_my_apps(db: AsyncSession, payload: UserRequest) -> JSONResponse:
    rows = await ApplicationService.list_owned_applications(db, payload.user_id)
    return ok("Applications", applications=_applications(rows))


# Keys

async def handle_create_key(db: AsyncSession, payload: CreateKeyRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "create keys")
    license_key = await KeyService.create_key(
        db,
        payload.api,
        payload.prefix,
        payload.days,
        payload.device_limit
    )
    return ok("Key created successfully", key=license_key.key)


async def handle_delete_key(db: AsyncSession, payload: KeyScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "delete keys")
    if not await KeyService.delete_key(db, payload.api, payload.key):
        return rejected("Key not found")
    return ok("Key deleted successfully")


async def handle_ban_key(db: AsyncSession, payload: KeyScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "ban keys")
    if not await KeyService.ban_key(db, payload.api, payload.key):
        return rejected("Key not found")
    return ok("Key banned successfully")


async def handle_check_key(db: AsyncSession, payload: KeyScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "view keys")
    license_key = await KeyService.get_key(db, payload.api, payload.key)
    if license_key is None:
        return rejected("Key not found")
    return ok("Key information", key=KeyRecord.model_validate(license_key).model_dump())


async def handle_reset_hwid(db: AsyncSession, payload: KeyScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "reset HWID")
    if not await KeyService.reset_binding(db, payload.api, payload.key):
        return rejected("Key not found")
    return ok("HWID reset successfully")


async def handle_get_keys(db: AsyncSession, payload: AppScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "view keys")
    keys = await KeyService.list_keys(db, payload.api)
    return ok("Keys", keys=[KeyRecord.model_validate(k).model_dump() for k in keys])


async def handle_list_keys(db: AsyncSession, payload: AppScopedRequest) -> JSONResponse:
    await require_application_permission(db, payload.user_id, payload.api, "view keys")
    keys = await KeyService.list_keys(db, payload.api)
    return ok("Keys", keys=[KeySummary.model_validate(k).model_dump() for k in keys])


async def handle_validate_key(db: AsyncSession, payload: ValidateKeyRequest) -> JSONResponse:
    result = await ValidationService.validate(
        db,
        payload.api,
        payload.key,
        payload.hwid,
        payload.system_info
    )
    return envelope(result.accepted, result.message)


# Support users

async def handle_add_support(db: AsyncSession, payload: SupportChangeRequest) -> JSONResponse:
    await SupportService.add_support(db, payload.user_id, payload.admin_id)
    return ok(f"Support user added: {payload.user_id}")


async def handle_delete_support(db: AsyncSession, payload: SupportChangeRequest) -> JSONResponse:
    await SupportService.delete_support(db, payload.user_id, payload.admin_id)
    return ok("Support user deleted successfully")


async def handle_get_supports(db: AsyncSession, payload: ActionRequest) -> JSONResponse:
    supports = await SupportService.list_supports(db)
    return ok(
        "Support users",
        supports=[SupportResponse.model_validate(s).model_dump() for s in supports]
    )


async def handle_check_support(db: AsyncSession, payload: UserRequest) -> JSONResponse:
    support = await SupportService.get_support(db, payload.user_id)
    if support is None:
        return rejected("User does not have access", is_support=False)
    return ok("Support user", is_support=True, user=SupportResponse.model_validate(support).model_dump())


# Permissions and diagnostics

async def handle_check_permission(db: AsyncSession, payload: CheckPermissionRequest) -> JSONResponse:
    decision = await resolve_permission(db, payload.user_id, payload.api)
    app_count = await count_owned_applications(db, payload.user_id)
    return ok(
        "Permission resolved",
        has_permission=decision.granted,
        is_admin=decision.is_main_admin,
        is_support=decision.is_support,
        app_count=app_count,
        max_apps=decision.max_apps
    )


async def handle_test(db: AsyncSession, payload: ActionRequest) -> JSONResponse:
    await db.execute(text("SELECT 1"))
    return ok("API is working!", database="connected")


ACTIONS: Dict[str, Tuple[Type[ActionRequest], Handler]] = {
    "create_app": (CreateAppRequest, handle_create_app),
    "delete_app": (DeleteAppRequest, handle_delete_app),
    "get_apps": (UserRequest, handle_get_apps),
    "get_my_apps": (UserRequest, handle_get_my_apps),
    "create_key": (CreateKeyRequest, handle_create_key),
    "delete_key": (KeyScopedRequest, handle_delete_key),
    "ban_key": (KeyScopedRequest, handle_ban_key),
    "check_key": (KeyScopedRequest, handle_check_key),
    "reset_hwid": (KeyScopedRequest, handle_reset_hwid),
    "get_keys": (AppScopedRequest, handle_get_keys),
    "list_keys": (AppScopedRequest, handle_list_keys),
    "validate_key": (ValidateKeyRequest, handle_validate_key),
    "add_support": (SupportChangeRequest, handle_add_support),
    "delete_support": (SupportChangeRequest, handle_delete_support),
    "get_supports": (ActionRequest, handle_get_supports),
    "check_support": (UserRequest, handle_check_support),
    "check_permission": (CheckPermissionRequest, handle_check_permission),
    "test": (ActionRequest, handle_test),
}


def parse_payload(schema: Type[ActionRequest], body: Dict[str, Any]) -> ActionRequest:
    """
    Validate the request body against the action's payload model.

    Raises:
        InvalidRequestException naming the missing or invalid fields
    """
    try:
        return schema.model_validate(body)
    except ValidationError as e:
        missing, invalid = [], []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            if error["type"] in ("missing", "string_too_short"):
                missing.append(field)
            else:
                invalid.append(field)
        if missing:
            raise InvalidRequestException(detail=f"Missing required fields: {', '.join(missing)}")
        raise InvalidRequestException(detail=f"Invalid value for fields: {', '.join(invalid)}")


async def read_body(request: Request) -> Dict[str, Any]:
    """JSON object body, or an empty dict for empty or non-object bodies."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("")
async def dispatch_action(
    request: Request,
    database: Database = Depends(get_database)
) -> JSONResponse:
    """
    Dispatch a request to the handler registered for its ``action``.
    """
    body = await read_body(request)
    action = body.get("action")

    logger.debug(
        sanitize_log_message(
            "Action received",
            Action=action,
            RequestID=get_request_id(request)
        )
    )

    if not isinstance(action, str) or action not in ACTIONS:
        raise InvalidRequestException(detail=f"Invalid action: {action}")

    schema, handler = ACTIONS[action]
    payload = parse_payload(schema, body)
    return await database.run(handler, payload)


@router.get("")
async def service_info(database: Database = Depends(get_database)) -> JSONResponse:
    """Service banner with database state."""
    return ok(
        "KeyAuth API is running!",
        database="connected" if database.connected else "disconnected",
        version=settings.VERSION
    )
